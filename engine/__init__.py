from engine.errors import (
    AlreadyEnrolledError,
    CapacityExceededError,
    DuplicateAssignmentError,
    DuplicateIdError,
    EngineError,
    GroupLevelMismatchError,
    InactiveGroupError,
    InactiveSubjectError,
    InUseError,
    InvalidIdentifierError,
    InvalidStudentError,
    InvalidValueError,
    NonEmptyGroupError,
    NotArchivedError,
    NotAssignedError,
    NotFoundError,
    PersistenceError,
    TransferIncompleteError,
)
from engine.store import EntityStore
from engine.history import HistoryLog
from engine.persistence import (
    DemoAdapter,
    JsonFileAdapter,
    PersistenceAdapter,
    RetryingAdapter,
    SyncQueue,
    build_adapter,
)
from engine.capacity import CapacityEngine
from engine.catalog import CatalogService

__all__ = [
    "AlreadyEnrolledError",
    "CapacityExceededError",
    "DuplicateAssignmentError",
    "DuplicateIdError",
    "EngineError",
    "GroupLevelMismatchError",
    "InactiveGroupError",
    "InactiveSubjectError",
    "InUseError",
    "InvalidIdentifierError",
    "InvalidStudentError",
    "InvalidValueError",
    "NonEmptyGroupError",
    "NotArchivedError",
    "NotAssignedError",
    "NotFoundError",
    "PersistenceError",
    "TransferIncompleteError",
    "EntityStore",
    "HistoryLog",
    "DemoAdapter",
    "JsonFileAdapter",
    "PersistenceAdapter",
    "RetryingAdapter",
    "SyncQueue",
    "build_adapter",
    "CapacityEngine",
    "CatalogService",
]
