"""File event recording.

Every decision the scanner takes about a file (discovered, discarded,
associated, failed) is reported to an event sink. The default
``EventRecorder`` counts events per code, keeps them for inspection and logs
them.
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


class EventCode(str, Enum):
    """Kinds of file events."""
    DISCOVERED_IMAGE = "discovered image"
    DISCOVERED_VIDEO = "discovered video"
    DISCOVERED_SIDECAR = "discovered sidecar"
    DISCOVERED_UNSUPPORTED = "discovered unsupported file"
    DISCOVERED_DISCARDED = "discarded file"
    ASSOCIATED_METADATA = "associated metadata"
    ERROR = "error"


_LEVELS = {
    EventCode.DISCOVERED_IMAGE: logging.DEBUG,
    EventCode.DISCOVERED_VIDEO: logging.DEBUG,
    EventCode.DISCOVERED_SIDECAR: logging.DEBUG,
    EventCode.DISCOVERED_UNSUPPORTED: logging.DEBUG,
    EventCode.DISCOVERED_DISCARDED: logging.WARNING,
    EventCode.ASSOCIATED_METADATA: logging.INFO,
    EventCode.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class FileAndName:
    """A file inside a given tree."""
    tree: Any
    name: str

    @property
    def tree_name(self) -> str:
        return getattr(self.tree, "name", "")

    def __str__(self) -> str:
        tree_name = self.tree_name
        return f"{tree_name}:{self.name}" if tree_name else self.name


@dataclass(frozen=True)
class FileEvent:
    """One recorded event."""
    code: EventCode
    file: FileAndName
    attrs: Dict[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    """Anything able to receive file events."""

    def record(self, code: EventCode, file: FileAndName, **attrs: Any) -> None:
        ...


class EventRecorder:
    """Thread-safe event sink with per-code counters.

    Args:
        logger: Logger receiving one line per event (module logger by default)
        keep_events: Keep every event in ``events`` (disable for huge scans)
    """

    def __init__(self, logger: Optional[logging.Logger] = None, keep_events: bool = True) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.keep_events = keep_events
        self.events: List[FileEvent] = []
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def record(self, code: EventCode, file: FileAndName, **attrs: Any) -> None:
        code = EventCode(code)
        with self._lock:
            self._counts[code] += 1
            if self.keep_events:
                self.events.append(FileEvent(code, file, dict(attrs)))
        self.logger.log(
            _LEVELS[code],
            f"{code.value.capitalize()}: {{'tree': {file.tree_name!r}, 'file': {file.name!r}"
            + "".join(f", {key!r}: {value!r}" for key, value in attrs.items())
            + "}",
        )

    def get_count(self, code: EventCode) -> int:
        with self._lock:
            return self._counts[EventCode(code)]

    def get_counts(self) -> Dict[EventCode, int]:
        """Counters for every code that occurred at least once."""
        with self._lock:
            return {code: count for code, count in self._counts.items() if count}

    def events_for(self, code: EventCode) -> List[FileEvent]:
        with self._lock:
            return [event for event in self.events if event.code == code]

    def log_summary(self) -> None:
        counts = self.get_counts()
        summary = ", ".join(f"{code.name.lower()!r}: {counts[code]}" for code in EventCode if code in counts)
        self.logger.info(f"File events: {{{summary}}}")
