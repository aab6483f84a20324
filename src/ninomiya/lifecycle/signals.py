"""
Signal Handling - Graceful shutdown support.

SIGTERM and SIGINT set the shutdown event; the daemon then closes every
live notification before exiting. A second signal exits immediately.
"""

import asyncio
import signal

import structlog

__all__ = ["SHUTDOWN_SIGNALS", "SignalHandler"]

logger = structlog.get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class SignalHandler:
    """Turns OS signals into a shutdown event on the event loop.

    Example:
        handler = SignalHandler()

        async def main():
            handler.setup()
            try:
                await daemon.run(handler.shutdown_event)
            finally:
                handler.restore()
    """

    def __init__(self) -> None:
        self._shutdown_event: asyncio.Event | None = None
        self._signals_received: list[signal.Signals] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def shutdown_event(self) -> asyncio.Event:
        """Set by the first shutdown signal or by trigger_shutdown()."""
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()
        return self._shutdown_event

    @property
    def should_shutdown(self) -> bool:
        return self._shutdown_event is not None and self._shutdown_event.is_set()

    @property
    def signals_received(self) -> list[signal.Signals]:
        return list(self._signals_received)

    def setup(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Install the SIGTERM/SIGINT handlers on loop (default: the running loop)."""
        if loop is None:
            loop = asyncio.get_running_loop()

        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self._handle_signal, sig)
        self._loop = loop

        logger.debug("signal_handlers_registered", signals=[s.name for s in SHUTDOWN_SIGNALS])

    def restore(self) -> None:
        """Remove the handlers installed by setup()."""
        if self._loop is None:
            return
        for sig in SHUTDOWN_SIGNALS:
            self._loop.remove_signal_handler(sig)
        self._loop = None

    def trigger_shutdown(self, reason: str = "requested") -> None:
        """Request shutdown without a signal."""
        logger.info("programmatic_shutdown", reason=reason)
        self.shutdown_event.set()

    def _handle_signal(self, sig: signal.Signals) -> None:
        self._signals_received.append(sig)
        logger.info("signal_received", signal=sig.name, count=len(self._signals_received))

        if len(self._signals_received) == 1:
            self.shutdown_event.set()
        else:
            # Notifications may still be closing; stop waiting for them
            logger.warning("forced_shutdown", signal=sig.name)
            raise SystemExit(128 + sig.value)
