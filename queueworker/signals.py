"""Signal bridge — turns SIGTERM/SIGINT into a worker stop request.

Python runs signal handlers in the main thread between bytecode
instructions, so the forwarded handler fires promptly even while the worker
is spinning through non-blocking pops, but never in the middle of another
Python-level operation.  The handler only flips the worker's stop flag; the
job in progress always completes and the loop exits at its next check.

Usage:
    bridge = SignalBridge()
    worker = Worker(queues, options, signal_bridge=bridge)
    try:
        worker.process_queue("emails")
    finally:
        bridge.uninstall()
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Any, Callable, Iterable

logger = logging.getLogger("queueworker.signals")


def termination_signals() -> tuple[int, ...]:
    """SIGTERM and SIGINT where the platform defines them."""
    return tuple(
        getattr(signal, name) for name in ("SIGTERM", "SIGINT") if hasattr(signal, name)
    )


class SignalBridge:
    """Installs Python signal handlers that forward the signal number."""

    def __init__(self, signals: Iterable[int] | None = None):
        self.signals = tuple(signals) if signals is not None else termination_signals()
        self._previous: dict[int, Any] = {}

    @property
    def installed(self) -> bool:
        return bool(self._previous)

    def install(self, handler: Callable[[int], None]) -> bool:
        """Register *handler* for every tracked signal.

        Returns False, leaving the bridge inert, when the platform has no
        termination signals or when called off the main thread.
        """
        if not self.signals:
            logger.warning("Signal handling unavailable on this platform; worker stops only on limits")
            return False
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Signal handlers can only be installed from the main thread; bridge inert")
            return False

        def _forward(signo: int, _frame: Any) -> None:
            handler(signo)

        for signo in self.signals:
            try:
                self._previous[signo] = signal.signal(signo, _forward)
            except (OSError, ValueError):
                logger.warning("Could not install handler for signal %s", signo, exc_info=True)
        if self._previous:
            logger.debug("Signal bridge installed for %s", sorted(self._previous))
        return self.installed

    def uninstall(self) -> None:
        """Restore the handlers that were active before :meth:`install`."""
        for signo, previous in self._previous.items():
            signal.signal(signo, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()
