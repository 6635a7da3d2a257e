# data_task_orchestrator/utils/progress.py
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]

class ProgressReporter:
    """Forwards (percentage, message) updates, keeping percentages in [0, 100] and strictly increasing"""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.last_progress: Optional[float] = None

    def report(self, progress: float, message: str) -> bool:
        """Returns False when the update was dropped for not moving forward"""
        progress = max(0.0, min(100.0, float(progress)))

        if self.last_progress is not None and progress <= self.last_progress:
            return False

        self.last_progress = progress
        logger.debug(f"{progress:.0f}% {message}")

        if self.callback is not None:
            self.callback(progress, message)
        return True

def reporter_from_config(config: Optional[dict]) -> ProgressReporter:
    """Reporter passed to a graph node through ``configurable``, or a silent one"""
    configurable = (config or {}).get("configurable", {})
    return configurable.get("progress_reporter") or ProgressReporter()
