from __future__ import annotations
import logging
from .events import BaseEvent, BootstrapFailed


class LoggerObserver:
    """Mirrors lifecycle events into the run log."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        fields = ", ".join(
            f"{k}={v}" for k, v in event.dict().items() if k not in ("ts", "run_id")
        )
        level = logging.ERROR if isinstance(event, BootstrapFailed) else logging.INFO
        self.logger.log(level, "[EVENT] %s: %s", event.__class__.__name__, fields)
