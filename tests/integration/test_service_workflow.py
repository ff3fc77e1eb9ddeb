import inspect
from pathlib import Path

import pytest

import formflow.definitions as definitions
import formflow.persistence as persistence
import formflow.sessions as sessions
from formflow import Actor, EngineStatus, WorkflowService
from formflow.config import FormflowConfig, SessionConfig
from formflow.definitions import WorkflowDefinitionStore
from formflow.errors import InvalidStateError, RequiredStepsIncompleteError
from formflow.persistence import SQLiteSubmissionRepository
from formflow.sessions import FileSessionStore, session_key

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures" / "workflows"


def _service(tmp_path) -> WorkflowService:
    """Build a service the way each request would, sharing only storage."""
    return WorkflowService(
        WorkflowDefinitionStore(FIXTURES),
        SQLiteSubmissionRepository(tmp_path / "formflow.db"),
        FileSessionStore(tmp_path / "sessions"),
    )


async def _step(tmp_path, actor, operation, *args):
    service = _service(tmp_path)
    engine = await service.open("small-claims", actor)
    try:
        result = getattr(engine, operation)(*args)
        if inspect.isawaitable(result):
            await result
    finally:
        await service.save(engine)
    return engine


@pytest.mark.asyncio
async def test_workflow_survives_across_requests(tmp_path):
    actor = Actor.of(session_token="anon-1")

    await _step(tmp_path, actor, "start")
    engine = await _step(tmp_path, actor, "advance", {"name": "Jane"})
    assert engine.position == 2

    submission = await engine.current_submission()
    # shared field prefill from SC-100
    assert submission.field_values == {"owner_name": "Jane"}

    await _step(tmp_path, actor, "advance", {})
    engine = await _step(tmp_path, actor, "advance", {"signature": "Jane Doe"})

    assert engine.status == EngineStatus.COMPLETE
    reloaded = await _service(tmp_path).open("small-claims", actor)
    assert reloaded == engine
    assert await reloaded.is_complete()
    assert [s.form_id for s in await reloaded.completed_submissions()] == [
        "SC-100",
        "SC-103",
        "SC-104",
    ]


@pytest.mark.asyncio
async def test_refused_completion_keeps_position(tmp_path):
    actor = Actor.of(user_id=7)
    await _step(tmp_path, actor, "start")
    await _step(tmp_path, actor, "advance", {})
    await _step(tmp_path, actor, "advance", {})

    with pytest.raises(RequiredStepsIncompleteError):
        await _step(tmp_path, actor, "advance", {"signature": "x"})

    engine = await _service(tmp_path).open("small-claims", actor)
    assert engine.position == 3
    assert engine.status == EngineStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_restart_reuses_submissions_across_requests(tmp_path):
    actor = Actor.of(session_token="anon-2")
    first = await (await _step(tmp_path, actor, "start")).current_submission()
    await _step(tmp_path, actor, "advance", {"name": "Jane"})
    restarted = await _step(tmp_path, actor, "restart")
    assert restarted.status == EngineStatus.NOT_STARTED

    engine = await _step(tmp_path, actor, "start")
    submission = await engine.current_submission()

    assert submission.id == first.id
    assert submission.field_values["name"] == "Jane"


@pytest.mark.asyncio
async def test_actors_do_not_share_submissions(tmp_path):
    anon = Actor.of(session_token="anon-3")
    user = Actor.of(user_id="3")
    anon_engine = await _step(tmp_path, anon, "advance", {"name": "Anon"})
    user_engine = await _step(tmp_path, user, "start")

    assert anon_engine.position == 2
    assert user_engine.position == 1
    submission = await user_engine.current_submission()
    assert submission.field_values == {}


@pytest.mark.asyncio
async def test_stored_state_for_other_actor_is_rejected(tmp_path):
    owner = Actor.of(session_token="owner")
    intruder = Actor.of(session_token="intruder")
    engine = await _step(tmp_path, owner, "start")

    store = FileSessionStore(tmp_path / "sessions")
    await store.save(session_key("small-claims", intruder), engine.to_serializable())

    with pytest.raises(InvalidStateError):
        await _service(tmp_path).open("small-claims", intruder)


@pytest.mark.asyncio
async def test_forget_drops_position_only(tmp_path):
    actor = Actor.of(session_token="anon-4")
    await _step(tmp_path, actor, "advance", {"name": "Jane"})

    service = _service(tmp_path)
    await service.forget("small-claims", actor)
    engine = await service.open("small-claims", actor)

    assert engine.status == EngineStatus.NOT_STARTED


@pytest.mark.asyncio
async def test_service_from_config(tmp_path, monkeypatch):
    monkeypatch.delenv("FORMFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("FORMFLOW_SESSION_BACKEND", raising=False)
    monkeypatch.setattr(definitions, "_store_instance", None)
    monkeypatch.setattr(persistence, "_repository_instance", None)
    monkeypatch.setattr(sessions, "_session_store_instance", None)
    config = FormflowConfig(
        workflows_path=str(FIXTURES),
        database_url=f"sqlite://{tmp_path / 'cfg.db'}",
        session=SessionConfig(backend="file", path=str(tmp_path / "cfg-sessions")),
    )

    service = WorkflowService.from_config(config)

    assert isinstance(service.repository, SQLiteSubmissionRepository)
    assert isinstance(service.session_store, FileSessionStore)
    engine = await service.open("small-claims", Actor.of(user_id="1"))
    await engine.start()
    await service.save(engine)
    assert list((tmp_path / "cfg-sessions").glob("*.json"))
