"""Gemeinsame Basis aller schreibenden Dienste (Engine und Katalog).

Eine Mutation wird vollständig validiert, dann als Liste von ``Change``-
Objekten plus Protokolleinträgen an ``_commit`` übergeben. ``_commit``
wendet sie je nach Sync-Strategie vor oder nach der Persistenz an.
"""

import functools
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Literal, Optional

from pydantic import BaseModel

from config.schema import AppConfig, SyncStrategy
from engine.errors import EngineError, InvalidIdentifierError, PersistenceError
from engine.history import HistoryLog, utc_now
from engine.persistence import (
    PersistenceAdapter,
    PersistOp,
    SyncQueue,
    create_op,
    delete_op,
    run_ops,
    update_op,
)
from engine.store import HISTORY, EntityStore
from models.history import AssignmentHistory

logger = logging.getLogger(__name__)


@dataclass
class Change:
    """Eine einzelne Store-Änderung."""

    action: Literal["insert", "replace", "delete"]
    kind: str
    entity: Optional[BaseModel] = None
    entity_id: str = ""

    def __post_init__(self) -> None:
        if self.entity is not None and not self.entity_id:
            self.entity_id = self.entity.id

    def to_op(self) -> PersistOp:
        if self.action == "insert":
            return create_op(self.kind, self.entity)
        if self.action == "replace":
            return update_op(self.kind, self.entity)
        return delete_op(self.kind, self.entity_id)

    def apply(self, store: EntityStore) -> None:
        if self.action == "insert":
            store.insert(self.kind, self.entity)
        elif self.action == "replace":
            store.replace(self.kind, self.entity)
        else:
            store.delete(self.kind, self.entity_id)


def insert(kind: str, entity: BaseModel) -> Change:
    return Change("insert", kind, entity)


def replace(kind: str, entity: BaseModel) -> Change:
    return Change("replace", kind, entity)


def remove(kind: str, entity_id: str) -> Change:
    return Change("delete", kind, entity_id=entity_id)


class Mutator:
    """Basisklasse mit Store, Protokoll, Adapter und Commit-Logik."""

    def __init__(
        self,
        store: EntityStore,
        history: HistoryLog,
        adapter: PersistenceAdapter,
        config: AppConfig,
        sync_queue: Optional[SyncQueue] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.history = history
        self.adapter = adapter
        self.config = config
        self.sync_queue = sync_queue if sync_queue is not None else SyncQueue()
        self._clock = clock

    @property
    def actor(self) -> str:
        return self.config.actor_id

    def _now(self) -> datetime:
        return self._clock()

    @staticmethod
    def _require(**identifiers: str) -> None:
        """Einzige Formatprüfung für IDs: nicht leer."""
        for name, value in identifiers.items():
            if not isinstance(value, str) or not value.strip():
                raise InvalidIdentifierError(name)

    def _commit(self, changes: list[Change],
                entries: Optional[list[AssignmentHistory]] = None) -> None:
        """Übernimmt validierte Änderungen in Store, Protokoll und Persistenz."""
        entries = entries or []
        ops = [c.to_op() for c in changes] + [create_op(HISTORY, e) for e in entries]

        if self.config.persistence.sync_strategy == SyncStrategy.STRICT:
            run_ops(self.adapter, ops)
            self._apply(changes, entries)
            return

        self._apply(changes, entries)
        # Über die Warteschlange, damit ältere ausstehende Stände nie neuere überschreiben
        self.sync_queue.extend(ops)
        try:
            self.sync_queue.drain(self.adapter)
        except PersistenceError as err:
            # Kein Rollback: Speicherstand bleibt, Datensätze gelten als ausstehend
            logger.warning("%d Operation(en) als ausstehend markiert", len(err.pending))
            raise

    def _apply(self, changes: list[Change], entries: list[AssignmentHistory]) -> None:
        for change in changes:
            change.apply(self.store)
        for entry in entries:
            self.history.record(entry)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def mutation(method):
    """Serialisiert eine schreibende Operation über ``store.lock``.

    Abgelehnte Operationen (fachliche Fehler) werden auf DEBUG protokolliert
    und unverändert weitergereicht.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.store.lock:
            try:
                return method(self, *args, **kwargs)
            except PersistenceError:
                raise
            except EngineError as err:
                logger.debug("%s abgelehnt: %s", method.__name__, err)
                raise
    return wrapper
