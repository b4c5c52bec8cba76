"""
Tests for the workflow state stores.
"""
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from procureflow.core.errors import InvalidInput, PersistenceError
from procureflow.db.session import Base, build_engine
from procureflow.db import models  # noqa
from procureflow.schemas import ArtifactKey, Stage
from procureflow.services.state_store import InMemoryWorkflowStateStore, SqlWorkflowStateStore


@pytest.fixture
def sql_store():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SqlWorkflowStateStore(session_factory=factory)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def any_store(request, sql_store):
    if request.param == "memory":
        return InMemoryWorkflowStateStore()
    return sql_store


# ============= SHARED CONTRACT =============

class TestStoreContract:
    """Behavior both stores share."""

    def test_save_and_recall(self, any_store):
        any_store.save("ws-1", ArtifactKey.ITEM_SET, {"projectName": "Lobby"})
        assert any_store.recall("ws-1", ArtifactKey.ITEM_SET) == {"projectName": "Lobby"}

    def test_string_keys_accepted(self, any_store):
        any_store.save("ws-1", "matchSet", {"matches": []})
        assert any_store.recall("ws-1", ArtifactKey.MATCH_SET) == {"matches": []}

    def test_absent_key_is_none(self, any_store):
        assert any_store.recall("ws-1", ArtifactKey.CONTRACT) is None

    def test_unknown_key_rejected(self, any_store):
        with pytest.raises(InvalidInput):
            any_store.save("ws-1", "somethingElse", {})
        with pytest.raises(InvalidInput):
            any_store.recall("ws-1", "somethingElse")

    def test_overwrite_keeps_latest(self, any_store):
        any_store.save("ws-1", ArtifactKey.SHIPMENT, {"status": "in_transit"})
        any_store.save("ws-1", ArtifactKey.SHIPMENT, {"status": "delivered"})
        assert any_store.recall("ws-1", ArtifactKey.SHIPMENT) == {"status": "delivered"}

    def test_workspaces_are_isolated(self, any_store):
        any_store.save("ws-1", ArtifactKey.ITEM_SET, {"projectName": "One"})
        any_store.save("ws-2", ArtifactKey.ITEM_SET, {"projectName": "Two"})

        assert any_store.recall("ws-1", ArtifactKey.ITEM_SET)["projectName"] == "One"
        assert any_store.recall("ws-2", ArtifactKey.ITEM_SET)["projectName"] == "Two"

    def test_save_many_and_load_state(self, any_store):
        any_store.save_many("ws-1", {
            ArtifactKey.ITEM_SET: {"items": []},
            ArtifactKey.CURRENT_STAGE: "extraction",
        })
        state = any_store.load_state("ws-1")

        assert state.current_stage == Stage.EXTRACTION
        assert state.has(ArtifactKey.ITEM_SET)
        assert ArtifactKey.CURRENT_STAGE not in state.artifacts

    def test_fresh_workspace_state(self, any_store):
        state = any_store.load_state("never-seen")
        assert state.current_stage == Stage.NOT_STARTED
        assert state.artifacts == {}

    def test_apply_sees_state_and_commits_values(self, any_store):
        any_store.save("ws-1", ArtifactKey.CURRENT_STAGE, "delivery")

        def update(state):
            assert state.current_stage == Stage.DELIVERY
            return {ArtifactKey.QUALITY_ISSUES: [{"issueId": "QC-1"}], "currentStage": "quality_control"}

        committed = any_store.apply("ws-1", update)

        assert committed[ArtifactKey.CURRENT_STAGE] == "quality_control"
        assert any_store.load_state("ws-1").current_stage == Stage.QUALITY_CONTROL
        assert any_store.recall("ws-1", ArtifactKey.QUALITY_ISSUES) == [{"issueId": "QC-1"}]

    def test_failed_apply_writes_nothing(self, any_store):
        def update(state):
            raise InvalidInput("rejected")

        with pytest.raises(InvalidInput):
            any_store.apply("ws-new", update)

        assert any_store.recall_all("ws-new") == {}
        assert any_store.load_state("ws-new").current_stage == Stage.NOT_STARTED


# ============= IN-MEMORY =============

class TestInMemoryStore:
    """Copy isolation for the process-local store."""

    def test_saved_value_is_copied(self):
        store = InMemoryWorkflowStateStore()
        value = {"items": [1, 2]}
        store.save("ws", ArtifactKey.ITEM_SET, value)
        value["items"].append(3)

        assert store.recall("ws", ArtifactKey.ITEM_SET) == {"items": [1, 2]}

    def test_recalled_value_is_copied(self):
        store = InMemoryWorkflowStateStore()
        store.save("ws", ArtifactKey.ITEM_SET, {"items": [1]})
        store.recall("ws", ArtifactKey.ITEM_SET)["items"].append(2)

        assert store.recall("ws", ArtifactKey.ITEM_SET) == {"items": [1]}


# ============= SQL =============

class TestSqlStore:
    """Database-backed store."""

    def test_upsert_keeps_one_row(self, sql_store):
        sql_store.save("ws", ArtifactKey.CONTRACT, {"status": "draft"})
        sql_store.save("ws", ArtifactKey.CONTRACT, {"status": "signed"})

        db = sql_store.session_factory()
        try:
            rows = db.query(models.WorkflowArtifact).filter_by(workspace_id="ws", artifact_key="contract").all()
        finally:
            db.close()
        assert len(rows) == 1
        assert rows[0].value == {"status": "signed"}

    def test_database_failure_raises_persistence_error(self):
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        store = SqlWorkflowStateStore(session_factory=lambda: session)

        with pytest.raises(PersistenceError):
            store.save("ws", ArtifactKey.ITEM_SET, {})
        with pytest.raises(PersistenceError):
            store.recall_all("ws")
        session.rollback.assert_called()

    def test_save_many_is_atomic(self, sql_store):
        sql_store.save("ws", ArtifactKey.CURRENT_STAGE, "extraction")
        with pytest.raises(InvalidInput):
            sql_store.save_many("ws", {ArtifactKey.CURRENT_STAGE: "compliance", "bogus": {}})

        assert sql_store.recall("ws", ArtifactKey.CURRENT_STAGE) == "extraction"

    def test_concurrent_first_writes_to_a_new_workspace(self, sql_file_store):
        keys = [ArtifactKey.ITEM_SET, ArtifactKey.COMPLIANCE_REPORT, ArtifactKey.MATCH_SET, ArtifactKey.RFQ_BUNDLE]
        with ThreadPoolExecutor(max_workers=len(keys)) as pool:
            futures = [pool.submit(sql_file_store.save, "ws-race", key, {"n": n}) for n, key in enumerate(keys)]
            for future in futures:
                future.result()

        assert set(sql_file_store.recall_all("ws-race")) == set(keys)

    def test_concurrent_appends_are_not_lost(self, sql_file_store):
        def append(state):
            issues = list(state.artifacts.get(ArtifactKey.QUALITY_ISSUES) or [])
            issues.append({"issueId": f"QC-{len(issues) + 1}"})
            return {ArtifactKey.QUALITY_ISSUES: issues}

        with ThreadPoolExecutor(max_workers=5) as pool:
            for future in [pool.submit(sql_file_store.apply, "ws", append) for _ in range(5)]:
                future.result()

        issues = sql_file_store.recall("ws", ArtifactKey.QUALITY_ISSUES)
        assert [i["issueId"] for i in issues] == [f"QC-{n}" for n in range(1, 6)]
