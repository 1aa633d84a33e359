"""Destinations for approved records."""

import copy
import threading
from typing import Any, Protocol

from legalflow.utils.logger import get_logger

logger = get_logger(__name__)


class RecordSink(Protocol):
    """Receives the final record of every approved review item."""

    def emit(self, record: dict[str, Any]) -> None: ...


class InMemoryRecordSink:
    """Keeps approved records in a list."""

    def __init__(self) -> None:
        self._records: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit(self, record: dict[str, Any]) -> None:
        with self._lock:
            self._records.append(copy.deepcopy(record))
        logger.debug("Stored record for item %s", record.get("extraction_metadata", {}).get("item_id"))

    @property
    def records(self) -> list[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._records)
