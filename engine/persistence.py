"""Persistenz-Adapter: übersetzt Store-Mutationen in create/update/delete-Aufrufe.

Die Engine kennt nur die abstrakte Schnittstelle; ob ein Demo-Speicher,
eine JSON-Datei oder ein entferntes Backend dahintersteht, ist egal.
Jeder Aufruf gelingt oder scheitert unabhängig von anderen Aufrufen.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from engine.errors import PersistenceError

if TYPE_CHECKING:
    from config.schema import PersistenceConfig

logger = logging.getLogger(__name__)

# Fehler, bei denen ein erneuter Versuch sinnvoll ist
TRANSIENT_ERRORS = (ConnectionError, TimeoutError)


@dataclass
class PersistOp:
    """Ein einzelner Persistenz-Aufruf."""

    action: Literal["create", "update", "delete"]
    kind: str
    record_id: str
    payload: Optional[dict[str, Any]] = None

    def apply(self, adapter: "PersistenceAdapter") -> None:
        if self.action == "create":
            adapter.create(self.kind, self.payload or {})
        elif self.action == "update":
            adapter.update(self.kind, self.record_id, self.payload or {})
        else:
            adapter.delete(self.kind, self.record_id)


def create_op(kind: str, entity) -> PersistOp:
    return PersistOp("create", kind, entity.id, entity.model_dump(mode="json"))


def update_op(kind: str, entity, fields: Optional[list[str]] = None) -> PersistOp:
    """Update mit dem vollständigen Datensatz oder nur mit ``fields``."""
    payload = entity.model_dump(mode="json")
    if fields is not None:
        payload = {k: payload[k] for k in fields}
    return PersistOp("update", kind, entity.id, payload)


def delete_op(kind: str, entity_id: str) -> PersistOp:
    return PersistOp("delete", kind, entity_id)


# ─── Schnittstelle ───

class PersistenceAdapter(ABC):
    """Abstrakte Persistenz-Schnittstelle (ein Backend pro Instanz)."""

    name = "abstract"

    @abstractmethod
    def create(self, kind: str, record: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def update(self, kind: str, record_id: str, patch: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, kind: str, record_id: str) -> None:
        ...


class DemoAdapter(PersistenceAdapter):
    """Lokaler Demo-Speicher ohne Backend (Fallback ohne Datenbank)."""

    name = "demo"

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, str]] = []

    def create(self, kind: str, record: dict[str, Any]) -> None:
        table = self.tables.setdefault(kind, {})
        if record["id"] in table:
            raise KeyError(f"{kind}/{record['id']} existiert bereits")
        table[record["id"]] = dict(record)
        self.calls.append(("create", kind, record["id"]))

    def update(self, kind: str, record_id: str, patch: dict[str, Any]) -> None:
        # Demo-Modus: unbekannte Datensätze (z.B. Demo-Seed) werden angelegt
        self.tables.setdefault(kind, {}).setdefault(record_id, {"id": record_id}).update(patch)
        self.calls.append(("update", kind, record_id))

    def delete(self, kind: str, record_id: str) -> None:
        self.tables.get(kind, {}).pop(record_id, None)
        self.calls.append(("delete", kind, record_id))


class JsonFileAdapter(PersistenceAdapter):
    """Schreibt nach jedem Aufruf einen SchoolData-kompatiblen JSON-Dump."""

    name = "json"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._meta: dict[str, Any] = {}
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        if self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            for key, value in raw.items():
                if isinstance(value, list):
                    self._tables[key] = {r["id"]: r for r in value}
                else:
                    self._meta[key] = value

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = dict(self._meta)
        data.update({kind: list(rows.values()) for kind, rows in self._tables.items()})
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp.replace(self.path)

    def create(self, kind: str, record: dict[str, Any]) -> None:
        table = self._tables.setdefault(kind, {})
        if record["id"] in table:
            raise KeyError(f"{kind}/{record['id']} existiert bereits in {self.path}")
        table[record["id"]] = dict(record)
        self._flush()

    def update(self, kind: str, record_id: str, patch: dict[str, Any]) -> None:
        table = self._tables.setdefault(kind, {})
        if record_id not in table:
            raise KeyError(f"{kind}/{record_id} nicht in {self.path}")
        table[record_id].update(patch)
        self._flush()

    def delete(self, kind: str, record_id: str) -> None:
        table = self._tables.setdefault(kind, {})
        if table.pop(record_id, None) is None:
            raise KeyError(f"{kind}/{record_id} nicht in {self.path}")
        self._flush()

    def records(self, kind: str) -> list[dict[str, Any]]:
        return list(self._tables.get(kind, {}).values())


class RetryingAdapter(PersistenceAdapter):
    """Begrenzte Wiederholung transienter Fehler (tenacity) um einen Adapter."""

    def __init__(self, inner: PersistenceAdapter, attempts: int = 3,
                 wait_seconds: float = 0.2) -> None:
        self.inner = inner
        self.name = f"retry({inner.name})"
        self.attempts = attempts
        self.wait_seconds = wait_seconds

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=self.wait_seconds, max=5),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _call(self, method: str, *args) -> None:
        for attempt in self._retrying():
            with attempt:
                getattr(self.inner, method)(*args)

    def create(self, kind: str, record: dict[str, Any]) -> None:
        self._call("create", kind, record)

    def update(self, kind: str, record_id: str, patch: dict[str, Any]) -> None:
        self._call("update", kind, record_id, patch)

    def delete(self, kind: str, record_id: str) -> None:
        self._call("delete", kind, record_id)


def build_adapter(config: "PersistenceConfig") -> PersistenceAdapter:
    """Wählt den Adapter laut Konfiguration und hüllt ihn in RetryingAdapter."""
    if config.mode == "json":
        inner: PersistenceAdapter = JsonFileAdapter(Path(config.json_path))
    else:
        inner = DemoAdapter()
    if config.retry_attempts <= 1:
        return inner
    return RetryingAdapter(inner, config.retry_attempts, config.retry_wait_seconds)


def run_ops(adapter: PersistenceAdapter, ops: list[PersistOp]) -> None:
    """Führt Operationen der Reihe nach aus; der erste Fehler bricht ab.

    Bei einem Fehler trägt der PersistenceError die noch offenen Operationen
    (inklusive der fehlgeschlagenen) als ``pending``.
    """
    for index, op in enumerate(ops):
        try:
            op.apply(adapter)
        except Exception as exc:
            logger.error("Persistenz fehlgeschlagen: %s %s/%s (%s)",
                         op.action, op.kind, op.record_id, exc)
            err = PersistenceError(op.action, op.kind, op.record_id, exc)
            err.pending = ops[index:]
            raise err from exc


# ─── Ausstehende Synchronisation ───

@dataclass
class SyncQueue:
    """Ausstehende Persistenz-Operationen im optimistischen Modus.

    Pro Datensatz wird zusammengefasst, damit beim Nachspielen nur der
    neueste Stand geschrieben wird:

    - create + update → create mit zusammengeführtem Datensatz
    - update + update → ein update
    - create + delete → entfällt (nie gespeichert)
    - update + delete → delete
    """

    ops: list[PersistOp] = field(default_factory=list)

    def extend(self, ops: list[PersistOp]) -> None:
        for op in ops:
            self.add(op)

    def add(self, op: PersistOp) -> None:
        index = self._latest(op.kind, op.record_id)
        if index is None:
            self.ops.append(op)
            return
        queued = self.ops[index]
        if queued.action == "delete" or op.action == "create":
            # delete ist noch nicht gespeichert: Reihenfolge beibehalten
            self.ops.append(op)
        elif op.action == "update":
            merged = {**(queued.payload or {}), **(op.payload or {})}
            self.ops[index] = PersistOp(queued.action, op.kind, op.record_id, merged)
        elif queued.action == "create":
            del self.ops[index]
        else:
            del self.ops[index]
            self.ops.append(op)

    def _latest(self, kind: str, record_id: str) -> Optional[int]:
        for index in range(len(self.ops) - 1, -1, -1):
            op = self.ops[index]
            if op.kind == kind and op.record_id == record_id:
                return index
        return None

    def pending_ids(self) -> set[tuple[str, str]]:
        return {(op.kind, op.record_id) for op in self.ops}

    def is_pending(self, kind: str, record_id: str) -> bool:
        return (kind, record_id) in self.pending_ids()

    def drain(self, adapter: PersistenceAdapter) -> None:
        """Spielt die Warteschlange in Reihenfolge ab; der erste Fehler wird geworfen.

        Der PersistenceError trägt alle noch offenen Operationen als ``pending``.
        """
        while self.ops:
            try:
                run_ops(adapter, self.ops[:1])
            except PersistenceError as err:
                err.pending = list(self.ops)
                raise
            self.ops.pop(0)

    def flush(self, adapter: PersistenceAdapter) -> int:
        """Spielt ausstehende Operationen erneut ein. Gibt die Anzahl erfolgreicher zurück.

        Bricht beim ersten Fehler ab; der Rest bleibt in der Warteschlange.
        """
        done = 0
        while self.ops:
            try:
                run_ops(adapter, self.ops[:1])
            except PersistenceError:
                break
            self.ops.pop(0)
            done += 1
        if done:
            logger.info("Synchronisiert: %d ausstehende Operation(en)", done)
        return done

    def __len__(self) -> int:
        return len(self.ops)
