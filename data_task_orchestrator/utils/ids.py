# data_task_orchestrator/utils/ids.py
import itertools
import threading
import uuid
from typing import Callable, Optional

# An id factory takes a prefix such as "task-duplicates" and returns a unique id
IdFactory = Callable[[str], str]

class SequentialIdFactory:
    """Deterministic ids: the same analysis run always yields the same ids"""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self, prefix: str) -> str:
        with self._lock:
            return f"{prefix}-{next(self._counter)}"

class UUIDIdFactory:
    """Random ids, for callers merging results from several runs"""

    def __call__(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex[:12]}"

def id_factory_from_config(config: Optional[dict], default: IdFactory) -> IdFactory:
    """Per-run id factory passed to a graph node through ``configurable``"""
    configurable = (config or {}).get("configurable", {})
    return configurable.get("id_factory") or default
