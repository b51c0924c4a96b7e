"""
Append-only, time-indexed ledger of variable bindings.

Each variable has its own timeline: the first write lands at index 0 and every
later write at the next index. Entries are never overwritten, so any past value
stays readable through ``read_at``.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging
import threading

from .values import Value, format_value, to_plain, from_plain
from ..errors import UnboundVariableError, TypeMismatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineEntry:
    """One binding: ``name`` held ``value`` from index ``time`` on."""
    name: str
    time: int
    value: Value

    def __str__(self) -> str:
        return f"{self.name}@{self.time} = {format_value(self.value)}"


class TimelineStore:
    """
    Per-variable timelines shared by the whole run.

    Writes and snapshots take the same lock, so a reader on another thread
    always sees a prefix of completed writes.
    """

    def __init__(self):
        self._timelines: Dict[str, List[TimelineEntry]] = {}
        self._lock = threading.RLock()
        self.write_count = 0

    def write(self, name: str, value: Value) -> int:
        """Append ``value`` as the newest binding of ``name``; returns its index."""
        if not value.type.is_bindable:
            raise TypeMismatchError(
                f"cannot bind {format_value(value)} to '{name}': "
                f"a potential has no value until its branch is merged",
                variable=name,
            )
        with self._lock:
            timeline = self._timelines.setdefault(name, [])
            time = len(timeline)
            timeline.append(TimelineEntry(name, time, value))
            self.write_count += 1
        logger.debug("write %s@%d = %s", name, time, value)
        return time

    def read(self, name: str) -> Value:
        """Latest value of ``name``."""
        with self._lock:
            timeline = self._timelines.get(name)
            if not timeline:
                raise self._unbound(name)
            return timeline[-1].value

    def read_at(self, name: str, time: int) -> Value:
        """Value ``name`` held at index ``time`` (the newest entry not after it)."""
        with self._lock:
            timeline = self._timelines.get(name)
            if not timeline or time < 0:
                raise self._unbound(name, time)
            # Indices are gapless, so position == time.
            return timeline[min(time, len(timeline) - 1)].value

    def entries(self, name: str) -> List[TimelineEntry]:
        """All entries of ``name`` in index order (empty if never written)."""
        with self._lock:
            return list(self._timelines.get(name, ()))

    def latest_index(self, name: str) -> Optional[int]:
        """Index of the newest entry, or None if ``name`` is unbound."""
        with self._lock:
            timeline = self._timelines.get(name)
            return len(timeline) - 1 if timeline else None

    def is_bound(self, name: str) -> bool:
        with self._lock:
            return bool(self._timelines.get(name))

    def names(self) -> List[str]:
        """Bound variable names in first-write order."""
        with self._lock:
            return list(self._timelines)

    def snapshot(self) -> Dict[str, List[TimelineEntry]]:
        """A read-consistent copy of every timeline."""
        with self._lock:
            return {name: list(timeline) for name, timeline in self._timelines.items()}

    def current_state(self) -> Dict[str, Value]:
        """Latest value of every bound variable."""
        with self._lock:
            return {name: timeline[-1].value for name, timeline in self._timelines.items()}

    def to_dict(self) -> Dict[str, Any]:
        """Plain data for YAML/JSON dumps."""
        return {
            "variables": {
                name: [{"time": e.time, **to_plain(e.value)} for e in timeline]
                for name, timeline in self.snapshot().items()
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineStore":
        """Rebuild a store from :meth:`to_dict` output."""
        store = cls()
        for name, entries in (data.get("variables") or {}).items():
            for expected, entry in enumerate(entries):
                if entry.get("time") != expected:
                    raise ValueError(
                        f"timeline of '{name}' is not gapless: "
                        f"expected time {expected}, found {entry.get('time')!r}"
                    )
                store.write(name, from_plain(entry))
        return store

    def __len__(self) -> int:
        return self.write_count

    def __contains__(self, name: str) -> bool:
        return self.is_bound(name)

    @staticmethod
    def _unbound(name: str, time: Optional[int] = None) -> UnboundVariableError:
        if time is None:
            message = f"variable '{name}' is not bound"
        else:
            message = f"variable '{name}' is not bound at time {time}"
        return UnboundVariableError(
            message,
            variable=name,
            hints=[f"write '{name}' with 'let {name} = ...' before reading it"],
        )
