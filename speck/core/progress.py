"""Single progress-event channel shared by all layers of one operation."""

from dataclasses import dataclass
from typing import Callable, List, Optional

from speck.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    stage: str  # prune, config, validate, git, files, deps, ide, done
    message: str
    percent: Optional[int] = None


ProgressListener = Callable[[ProgressEvent], None]


class ProgressChannel:
    """Producers emit events; whoever renders them subscribes.

    Step sequencing never depends on whether anyone is listening. Listener
    exceptions are logged and do not interrupt the operation.
    """

    def __init__(self):
        self._listeners: List[ProgressListener] = []
        self.last_percent = 0

    def subscribe(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def emit(self, stage: str, message: str, percent: Optional[int] = None) -> None:
        if percent is not None:
            self.last_percent = percent
        event = ProgressEvent(stage=stage, message=message, percent=percent)
        logger.debug(f"[{stage}] {message}")
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Progress listener failed: {e}")


class ProgressRecorder:
    """Listener that keeps every event, for JSON output and tests."""

    def __init__(self):
        self.events: List[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def messages(self) -> List[str]:
        return [event.message for event in self.events]
