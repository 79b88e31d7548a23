"""SchoolSession: verdrahtet Store, Protokoll, Adapter und Dienste.

Keine globale Instanz: jede Session besitzt ihren eigenen Store und wird
vom Aufrufer (CLI, Tests) explizit erzeugt.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from analysis.integrity_validator import IntegrityReport, IntegrityValidator
from analysis.queries import QueryFacade
from config.schema import AppConfig
from engine.capacity import CapacityEngine
from engine.catalog import CatalogService
from engine.history import HistoryLog, utc_now
from engine.persistence import PersistenceAdapter, SyncQueue, build_adapter
from engine.store import EntityStore
from models.school_data import SchoolData

logger = logging.getLogger(__name__)


class SchoolSession:
    """Eine Arbeitssitzung über einem Datenbestand."""

    def __init__(
        self,
        data: Optional[SchoolData] = None,
        config: Optional[AppConfig] = None,
        adapter: Optional[PersistenceAdapter] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        data = data or SchoolData()
        self.config = config or AppConfig()
        self.store = EntityStore.from_school_data(data)
        self.history = HistoryLog(data.history, clock=clock)
        self.adapter = adapter or build_adapter(self.config.persistence)
        self.sync_queue = SyncQueue()
        self._created_at = data.created_at

        wiring = dict(store=self.store, history=self.history, adapter=self.adapter,
                      config=self.config, sync_queue=self.sync_queue, clock=clock)
        self.capacity = CapacityEngine(**wiring)
        self.catalog = CatalogService(**wiring)
        self.queries = QueryFacade(self.store)
        self.validator = IntegrityValidator()

        logger.debug("Session gestartet: %r, %r, Adapter=%s",
                     self.store, self.history, self.adapter.name)

    def snapshot(self) -> SchoolData:
        """Aktueller Stand inklusive Protokoll als SchoolData."""
        with self.store.lock:
            return self.store.to_school_data(
                history=self.history.entries(),
                created_at=self._created_at,
            )

    def validate(self) -> IntegrityReport:
        return self.validator.validate(self.store)

    def flush_pending(self) -> int:
        """Versucht ausstehende Persistenz-Operationen erneut."""
        with self.store.lock:
            return self.sync_queue.flush(self.adapter)
