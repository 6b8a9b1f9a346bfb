"""PortVM trace watcher implementations.

This module provides standard trace watcher implementations for debugging
PortVM programs one instruction at a time.
"""

from typing import List, Protocol


class PortVMTraceWatcher(Protocol):
    """Protocol for PortVM trace watchers."""
    def on_trace(self, message: str) -> None:
        """
        Called after each instruction is executed.

        Args:
            message: Description of the instruction and the resulting stack
        """


class PortVMStdoutTraceWatcher:
    """Watcher that prints trace messages to stdout."""

    def on_trace(self, message: str) -> None:
        print(message)


class PortVMBufferingTraceWatcher:
    """Watcher that buffers trace messages for programmatic access."""

    def __init__(self) -> None:
        """Initialize buffering trace watcher."""
        self.traces: List[str] = []

    def on_trace(self, message: str) -> None:
        """
        Buffer trace message.

        Args:
            message: Description of the instruction and the resulting stack
        """
        self.traces.append(message)

    def clear(self) -> None:
        """Discard all buffered messages."""
        self.traces.clear()
