"""Submission repository tests for the in-process backends."""

import uuid

import pytest

import formflow.persistence as persistence
from formflow.contracts import Actor
from formflow.persistence import (
    InMemorySubmissionRepository,
    SQLiteSubmissionRepository,
    WorkflowScope,
    get_repository,
)


@pytest.fixture(params=["inmemory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteSubmissionRepository(tmp_path / "submissions.db")
    return InMemorySubmissionRepository()


def _scope() -> WorkflowScope:
    return WorkflowScope(workflow_id="claim", session_id=str(uuid.uuid4()))


@pytest.mark.asyncio
async def test_find_or_create_is_idempotent(repo):
    actor = Actor.of(session_token="anon")
    scope = _scope()

    first = await repo.find_or_create("F1", actor, scope, 1)
    second = await repo.find_or_create("F1", actor, scope, 1)

    assert first.id == second.id
    assert first.status == "draft"
    assert first.owner == "session:anon"
    assert first.workflow_session_id == scope.session_id
    assert len(await repo.list_for_scope(scope, actor)) == 1


@pytest.mark.asyncio
async def test_distinct_keys_create_distinct_submissions(repo):
    anon = Actor.of(session_token="anon")
    user = Actor.of(user_id="9")
    scope = _scope()

    a = await repo.find_or_create("F1", anon, scope, 1)
    b = await repo.find_or_create("F1", user, scope, 1)
    c = await repo.find_or_create("F1", anon, _scope(), 1)
    d = await repo.find_or_create("F2", anon, scope, 2)

    assert len({a.id, b.id, c.id, d.id}) == 4


@pytest.mark.asyncio
async def test_update_complete_and_reopen(repo):
    actor = Actor.of(user_id="1")
    scope = _scope()
    sub = await repo.find_or_create("F1", actor, scope, 1)

    assert await repo.update_fields(sub.id, {"name": "Jane"})
    assert await repo.update_fields(sub.id, {"city": "Fresno"})
    assert await repo.mark_completed(sub.id)

    stored = await repo.get(sub.id)
    assert stored.field_values == {"name": "Jane", "city": "Fresno"}
    assert stored.is_complete
    assert stored.completed_at is not None

    assert await repo.reopen(sub.id)
    reopened = await repo.get(sub.id)
    assert reopened.status == "draft"
    assert reopened.completed_at is None


@pytest.mark.asyncio
async def test_missing_submission_operations(repo):
    assert await repo.get("missing") is None
    assert not await repo.update_fields("missing", {"a": "b"})
    assert not await repo.mark_completed("missing")
    assert not await repo.reopen("missing")


@pytest.mark.asyncio
async def test_list_for_scope_orders_by_step_and_filters_owner(repo):
    actor = Actor.of(session_token="anon")
    other = Actor.of(session_token="other")
    scope = _scope()
    await repo.find_or_create("F3", actor, scope, 3)
    await repo.find_or_create("F1", actor, scope, 1)
    await repo.find_or_create("F1", other, scope, 1)

    listed = await repo.list_for_scope(scope, actor)
    assert [s.step_position for s in listed] == [1, 3]


@pytest.mark.asyncio
async def test_returned_submissions_are_copies():
    repo = InMemorySubmissionRepository()
    actor = Actor.of(session_token="anon")
    sub = await repo.find_or_create("F1", actor, _scope(), 1)
    sub.field_values["name"] = "changed locally"

    assert (await repo.get(sub.id)).field_values == {}


@pytest.mark.asyncio
async def test_sqlite_uniqueness_across_connections(tmp_path):
    path = tmp_path / "shared.db"
    actor = Actor.of(user_id="1")
    scope = _scope()

    first = await SQLiteSubmissionRepository(path).find_or_create("F1", actor, scope, 1)
    second = await SQLiteSubmissionRepository(path).find_or_create("F1", actor, scope, 1)

    assert first.id == second.id


def test_get_repository_selects_backend(tmp_path, monkeypatch):
    monkeypatch.setattr(persistence, "_repository_instance", None)
    monkeypatch.delenv("FORMFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    repo = get_repository(database_url=f"sqlite://{tmp_path / 'x.db'}")
    assert isinstance(repo, SQLiteSubmissionRepository)
    # cached instance is reused without arguments
    assert get_repository() is repo

    with pytest.raises(ValueError):
        get_repository(database_url="mysql://nope")
