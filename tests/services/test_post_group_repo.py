# mypy: ignore-errors
"""Tests for the post group repository state transitions."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from publora_engine.core.errors import InvalidTransition, NotFound
from publora_engine.core.security import Principal
from publora_engine.models import PlatformPost, PostGroupIdRegistry, PostGroupTransition
from publora_engine.repositories.post_group_repo import PostGroupRepository
from publora_engine.services.validation import UpdatePostCommand, validate_create

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

LATER = NOW + timedelta(hours=1)


def _create(repo, principal, *, scheduled=True, platforms=("twitter-123", "linkedin-456")):
    payload = {"content": "Launch day", "platforms": list(platforms)}
    if scheduled:
        payload["scheduledTime"] = LATER.isoformat()
    return repo.create(validate_create(payload, NOW), principal, now=NOW)


def test_create_scheduled_group_with_posts(db_session, principal) -> None:
    group = _create(PostGroupRepository(db_session), principal)

    assert group.status == "scheduled"
    assert group.scheduled_time == LATER
    assert group.version == 1
    assert group.platforms == ["twitter-123", "linkedin-456"]
    assert [(post.platform, post.platform_id, post.status) for post in group.posts] == [
        ("twitter", "twitter-123", "scheduled"),
        ("linkedin", "linkedin-456", "scheduled"),
    ]


def test_create_without_time_is_draft(db_session, principal) -> None:
    group = _create(PostGroupRepository(db_session), principal, scheduled=False)
    assert group.status == "draft"
    assert group.scheduled_time is None
    assert {post.status for post in group.posts} == {"draft"}


def test_ids_are_never_reused_after_delete(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    first = _create(repo, principal)
    first_id = first.id
    repo.delete(first_id, principal)
    second = _create(repo, principal)

    assert second.id != first_id
    assert repo.find(first_id) is None
    registered = db_session.execute(select(func.count()).select_from(PostGroupIdRegistry)).scalar_one()
    assert registered == 2
    assert repo.count_created_since(principal.account_id, NOW - timedelta(days=365 * 10)) == 2


def test_get_is_scoped_to_owner(db_session, principal, workspace_user) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)

    with pytest.raises(NotFound) as excinfo:
        repo.get(group.id, Principal(account_id=principal.account_id + 1))
    assert excinfo.value.reason == "PostNotFound"

    with pytest.raises(NotFound):
        repo.get(group.id, Principal(account_id=principal.account_id, workspace_user_id=workspace_user.id))


def test_update_reschedules_and_bumps_version(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    new_time = LATER + timedelta(days=2)

    updated = repo.update(group.id, UpdatePostCommand(scheduled_time=new_time), principal, now=NOW)

    assert updated.scheduled_time == new_time
    assert updated.status == "scheduled"
    assert updated.version == 2


def test_scheduling_draft_without_time_uses_now(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal, scheduled=False)

    updated = repo.update(group.id, UpdatePostCommand(status="scheduled"), principal, now=NOW)

    assert updated.status == "scheduled"
    assert updated.scheduled_time == NOW
    assert {post.status for post in updated.posts} == {"scheduled"}


def test_scheduled_group_can_return_to_draft(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)

    updated = repo.update(group.id, UpdatePostCommand(status="draft"), principal, now=NOW)

    assert updated.status == "draft"
    assert repo.list_due(LATER + timedelta(days=1), 10) == []


def test_update_after_claim_is_rejected(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    assert repo.claim_for_processing(group.id, LATER)

    with pytest.raises(InvalidTransition):
        repo.update(group.id, UpdatePostCommand(scheduled_time=LATER + timedelta(days=1)), principal, now=NOW)
    assert repo.find(group.id).status == "processing"


def test_update_with_stale_version_loses_race(db_session, principal, mocker) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    repo.update(group.id, UpdatePostCommand(scheduled_time=LATER + timedelta(days=1)), principal, now=NOW)

    stale = SimpleNamespace(id=group.id, status="scheduled", scheduled_time=LATER, version=1)
    mocker.patch.object(repo, "get", return_value=stale)

    with pytest.raises(InvalidTransition):
        repo.update(group.id, UpdatePostCommand(scheduled_time=LATER + timedelta(days=5)), principal, now=NOW)
    assert repo.find(group.id).scheduled_time == LATER + timedelta(days=1)


def test_claim_happens_at_most_once(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)

    assert repo.list_due(NOW, 10) == []
    assert not repo.claim_for_processing(group.id, NOW)

    assert repo.list_due(LATER, 10) == [group.id]
    assert repo.claim_for_processing(group.id, LATER)
    assert not repo.claim_for_processing(group.id, LATER)

    transitions = db_session.execute(
        select(func.count()).select_from(PostGroupTransition).where(PostGroupTransition.post_group_id == group.id)
    ).scalar_one()
    assert transitions == 1
    claimed = repo.find(group.id)
    assert claimed.status == "processing"
    assert claimed.processing_started_at == LATER
    assert {post.status for post in claimed.posts} == {"processing"}


def test_claim_refused_when_transition_already_recorded(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    db_session.add(PostGroupTransition(post_group_id=group.id, transition="scheduled->processing"))
    db_session.commit()

    assert not repo.claim_for_processing(group.id, LATER)
    assert repo.find(group.id).status == "scheduled"


def test_lock_editable_only_for_draft_or_scheduled(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)

    assert repo.lock_editable(group.id, NOW)
    db_session.commit()
    assert not repo.lock_editable("does-not-exist", NOW)

    repo.claim_for_processing(group.id, LATER)
    assert not repo.lock_editable(group.id, NOW)
    db_session.rollback()


def test_delete_refused_while_processing(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    repo.claim_for_processing(group.id, LATER)

    with pytest.raises(InvalidTransition):
        repo.delete(group.id, principal)
    assert repo.find(group.id) is not None


def test_delete_removes_posts(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    group_id = group.id

    repo.delete(group_id, principal)

    with pytest.raises(NotFound):
        repo.get(group_id, principal)
    remaining = db_session.execute(
        select(func.count()).select_from(PlatformPost).where(PlatformPost.post_group_id == group_id)
    ).scalar_one()
    assert remaining == 0


def test_record_result_then_finalize(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    repo.claim_for_processing(group.id, LATER)
    first, second = repo.find(group.id).posts

    assert repo.record_post_result(first.id, status="published", attempts=1, posted_id="1", now=LATER)
    assert not repo.record_post_result(first.id, status="failed", attempts=2, error="late")
    assert repo.finalize(group.id, now=LATER) == "processing"

    assert repo.record_post_result(second.id, status="failed", attempts=1, error="http_400: rejected")
    assert repo.finalize(group.id, now=LATER) == "partially_published"

    final = repo.find(group.id)
    assert final.status == "partially_published"
    assert final.posts[0].posted_id == "1"
    assert final.posts[0].published_at == LATER
    assert final.posts[1].error == "http_400: rejected"


def test_stuck_groups_are_listed_and_failed(db_session, principal) -> None:
    repo = PostGroupRepository(db_session)
    group = _create(repo, principal)
    repo.claim_for_processing(group.id, LATER)

    assert repo.list_stuck(LATER, 10) == []
    assert repo.list_stuck(LATER + timedelta(hours=1), 10) == [group.id]
    assert repo.fail_unfinished_posts(group.id, "ProcessingTimeout: too slow") == 2
    assert repo.finalize(group.id) == "failed"
