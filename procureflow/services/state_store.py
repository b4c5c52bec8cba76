"""
Workflow state store: durable (workspace_id, artifact_key) -> JSON value.

Stores also serialize read-modify-write steps per workspace through `apply`,
so concurrent workers on one workspace cannot overwrite each other's updates.
"""
from abc import ABC, abstractmethod
import copy
import threading
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql import func

from procureflow.core.errors import InvalidInput, PersistenceError
from procureflow.core.logging import get_logger
from procureflow.db.session import get_db_context
from procureflow.schemas import ArtifactKey, Stage, WorkflowState

logger = get_logger(__name__)

KeyLike = Union[ArtifactKey, str]

# Receives the current state, returns the values to commit
StateUpdate = Callable[[WorkflowState], Dict[KeyLike, Any]]


def _artifact_key(key: KeyLike) -> ArtifactKey:
    try:
        return ArtifactKey(key)
    except ValueError:
        raise InvalidInput(f"Unknown artifact key: {key!r}") from None


def _build_state(workspace_id: str, values: Dict[ArtifactKey, Any]) -> WorkflowState:
    values = dict(values)
    current = values.pop(ArtifactKey.CURRENT_STAGE, None)
    return WorkflowState(
        workspace_id=workspace_id,
        current_stage=Stage(current) if current else Stage.NOT_STARTED,
        artifacts=values,
    )


class WorkspaceLocks:
    """Registry of per-workspace locks. Holders for one workspace run one at a time."""

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, workspace_id: str) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(workspace_id, threading.RLock())


class WorkflowStateStore(ABC):
    """
    Contract for workflow state persistence.

    Every save is atomic; `save_many` commits all values in one transaction so a
    stage artifact and the currentStage marker are never observed apart.
    `apply` additionally makes the read that produced those values part of the
    same serialized step.
    """

    @abstractmethod
    def save_many(self, workspace_id: str, values: Dict[KeyLike, Any]) -> None:
        pass

    @abstractmethod
    def recall(self, workspace_id: str, key: KeyLike) -> Optional[Any]:
        """Return the last saved value, or None when absent."""
        pass

    @abstractmethod
    def recall_all(self, workspace_id: str) -> Dict[ArtifactKey, Any]:
        pass

    @abstractmethod
    def apply(self, workspace_id: str, update: StateUpdate) -> Dict[ArtifactKey, Any]:
        """
        Load the workspace state, compute new values from it and commit them.

        No other `apply` or save on the same workspace interleaves between the
        load and the commit. Nothing is written when `update` raises.

        Returns:
            The values committed
        """
        pass

    def save(self, workspace_id: str, key: KeyLike, value: Any) -> None:
        self.save_many(workspace_id, {key: value})

    def load_state(self, workspace_id: str) -> WorkflowState:
        return _build_state(workspace_id, self.recall_all(workspace_id))


class InMemoryWorkflowStateStore(WorkflowStateStore):
    """Process-local store for tests and single-process demos."""

    def __init__(self):
        self._data: Dict[str, Dict[ArtifactKey, Any]] = {}
        self._lock = threading.Lock()
        self.locks = WorkspaceLocks()

    def save_many(self, workspace_id: str, values: Dict[KeyLike, Any]) -> None:
        staged = {_artifact_key(k): copy.deepcopy(v) for k, v in values.items()}
        with self.locks.get(workspace_id), self._lock:
            self._data.setdefault(workspace_id, {}).update(staged)

    def recall(self, workspace_id: str, key: KeyLike) -> Optional[Any]:
        key = _artifact_key(key)
        with self._lock:
            value = self._data.get(workspace_id, {}).get(key)
        return copy.deepcopy(value)

    def recall_all(self, workspace_id: str) -> Dict[ArtifactKey, Any]:
        with self._lock:
            values = dict(self._data.get(workspace_id, {}))
        return copy.deepcopy(values)

    def apply(self, workspace_id: str, update: StateUpdate) -> Dict[ArtifactKey, Any]:
        with self.locks.get(workspace_id):
            values = {_artifact_key(k): v for k, v in update(self.load_state(workspace_id)).items()}
            self.save_many(workspace_id, values)
        return values


class SqlWorkflowStateStore(WorkflowStateStore):
    """
    Store backed by the workflow_artifacts table.

    Each workspace has a currentStage row that every write claims first with an
    UPDATE. The claim holds the row lock (the database write lock on SQLite)
    until commit, so writers on one workspace queue up behind each other, across
    processes as well as threads.
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def save_many(self, workspace_id: str, values: Dict[KeyLike, Any]) -> None:
        staged = {_artifact_key(k): v for k, v in values.items()}
        self.apply(workspace_id, lambda state: staged)

    def apply(self, workspace_id: str, update: StateUpdate) -> Dict[ArtifactKey, Any]:
        from procureflow.db.models import WorkflowArtifact

        try:
            self._ensure_anchor(workspace_id)
            with get_db_context(self.session_factory) as db:
                db.query(WorkflowArtifact).filter(
                    WorkflowArtifact.workspace_id == workspace_id,
                    WorkflowArtifact.artifact_key == ArtifactKey.CURRENT_STAGE.value,
                ).update({WorkflowArtifact.updated_at: func.now()}, synchronize_session=False)

                rows = {
                    r.artifact_key: r
                    for r in db.query(WorkflowArtifact).filter(
                        WorkflowArtifact.workspace_id == workspace_id
                    ).all()
                }
                state = _build_state(workspace_id, {
                    ArtifactKey(key): copy.deepcopy(row.value) for key, row in rows.items() if row.value is not None
                })

                values = {_artifact_key(k): v for k, v in update(state).items()}
                for key, value in values.items():
                    row = rows.get(key.value)
                    if row is not None:
                        row.value = value
                    else:
                        db.add(WorkflowArtifact(
                            workspace_id=workspace_id,
                            artifact_key=key.value,
                            value=value,
                        ))
            return values
        except SQLAlchemyError as e:
            logger.error(f"Failed to save workflow state for {workspace_id}: {e}")
            raise PersistenceError(f"Workflow state store unavailable: {e}") from e

    def _ensure_anchor(self, workspace_id: str) -> None:
        """Create the workspace's currentStage row (empty) if it does not exist yet."""
        from procureflow.db.models import WorkflowArtifact

        try:
            with get_db_context(self.session_factory) as db:
                exists = db.query(WorkflowArtifact.id).filter(
                    WorkflowArtifact.workspace_id == workspace_id,
                    WorkflowArtifact.artifact_key == ArtifactKey.CURRENT_STAGE.value,
                ).first()
                if exists is None:
                    db.add(WorkflowArtifact(
                        workspace_id=workspace_id,
                        artifact_key=ArtifactKey.CURRENT_STAGE.value,
                        value=None,
                    ))
        except IntegrityError:
            # Another writer created it between the check and the insert
            logger.debug(f"currentStage row for {workspace_id} already created")

    def recall(self, workspace_id: str, key: KeyLike) -> Optional[Any]:
        from procureflow.db.models import WorkflowArtifact

        key = _artifact_key(key)
        try:
            with get_db_context(self.session_factory) as db:
                row = db.query(WorkflowArtifact).filter(
                    WorkflowArtifact.workspace_id == workspace_id,
                    WorkflowArtifact.artifact_key == key.value,
                ).first()
                return row.value if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Workflow state store unavailable: {e}") from e

    def recall_all(self, workspace_id: str) -> Dict[ArtifactKey, Any]:
        from procureflow.db.models import WorkflowArtifact

        try:
            with get_db_context(self.session_factory) as db:
                rows = db.query(WorkflowArtifact).filter(
                    WorkflowArtifact.workspace_id == workspace_id
                ).all()
                return {ArtifactKey(r.artifact_key): r.value for r in rows if r.value is not None}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Workflow state store unavailable: {e}") from e
