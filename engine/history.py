"""HistoryLog: append-only Protokoll aller belegungsrelevanten Änderungen."""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from engine.errors import DuplicateIdError
from models.history import AssignmentHistory, HistoryFilter, HistoryType

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryLog:
    """Append-only Folge von AssignmentHistory-Einträgen.

    IDs steigen streng monoton, Zeitstempel nie fallend. Einträge werden
    weder bearbeitet noch entfernt; Aufbewahrung ist Sache des Aufrufers.
    """

    def __init__(self, entries: Iterable[AssignmentHistory] = (),
                 clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._entries: list[AssignmentHistory] = []
        self._ids: set[str] = set()
        self._seq = 0
        for entry in entries:
            self.record(entry)

    @staticmethod
    def _parse_seq(entry_id: str) -> int:
        _, _, tail = entry_id.rpartition("-")
        return int(tail) if tail.isdigit() else 0

    def new_entry(self, *, type: HistoryType, reason: str, changed_by: str,
                  student_id: str = "", from_id: str = "", to_id: str = "",
                  notes: Optional[str] = None,
                  after: Optional[AssignmentHistory] = None) -> AssignmentHistory:
        """Erzeugt (ohne anzuhängen) einen Eintrag mit nächster ID und Zeitstempel.

        ``after`` ist ein bereits erzeugter, noch nicht angehängter Vorgänger
        (mehrere Einträge in einer Operation).
        """
        previous = after or (self._entries[-1] if self._entries else None)
        seq = max(self._seq, self._parse_seq(previous.id) if previous else 0) + 1
        changed_at = self._clock()
        if previous is not None and changed_at < previous.changed_at:
            changed_at = previous.changed_at
        return AssignmentHistory(
            id=f"history-{seq:06d}",
            student_id=student_id,
            type=type,
            from_id=from_id,
            to_id=to_id,
            reason=reason,
            changed_by=changed_by,
            changed_at=changed_at,
            notes=notes,
        )

    def record(self, entry: AssignmentHistory) -> None:
        """Hängt einen Eintrag an."""
        if entry.id in self._ids:
            raise DuplicateIdError("Protokolleintrag", entry.id)
        if self._entries and entry.changed_at < self._entries[-1].changed_at:
            raise ValueError(
                f"Protokolleintrag {entry.id} liegt zeitlich vor dem letzten Eintrag"
            )
        self._entries.append(entry)
        self._ids.add(entry.id)
        self._seq = max(self._seq, self._parse_seq(entry.id))
        logger.debug("Protokoll: %s %s %s→%s (%s)", entry.type.value,
                     entry.student_id or "-", entry.from_id or "-",
                     entry.to_id or "-", entry.reason)

    def query(self, flt: Optional[HistoryFilter] = None) -> list[AssignmentHistory]:
        """Einträge in Protokollreihenfolge, optional gefiltert."""
        if flt is None:
            return list(self._entries)
        return [e for e in self._entries if flt.matches(e)]

    def entries(self) -> list[AssignmentHistory]:
        return list(self._entries)

    @property
    def last(self) -> Optional[AssignmentHistory]:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"HistoryLog({len(self._entries)} entries)"
