"""Tests for alert dedup, persistence and status transitions"""

import pytest
from conftest import add_business
from smartkas.constants import AlertStatus, Severity
from smartkas.models import AlertDraft, AlertUpdate
from smartkas.orchestrator.alert_lifecycle import AlertLifecycleManager, check_transition
from smartkas.utils.errors import AlertNotFoundError, InvalidTransitionError, OwnershipError


def _draft(title="Unusual spend", severity="high"):
    return AlertDraft(title=title, description="Large payment", severity=severity, suggestedActions=["Check"])


@pytest.fixture
def lifecycle(store, clock):
    add_business(store)
    return AlertLifecycleManager(store, dedup_window_hours=24, clock=clock)


def test_persist_creates_new_alerts(lifecycle, store, clock):
    """Drafts become alerts in state new, timestamped by the clock"""
    created = lifecycle.persist_drafts("biz_001", [_draft("A"), _draft("B", "low")])

    assert [a.title for a in created] == ["A", "B"]
    assert all(a.status == AlertStatus.NEW for a in created)
    assert created[1].severity == Severity.LOW
    assert created[0].created_at == clock.now
    assert len(store.list_alerts("biz_001")) == 2


def test_same_title_within_window_is_suppressed(lifecycle, store, clock):
    """A repeated title inside 24 hours creates nothing"""
    lifecycle.persist_drafts("biz_001", [_draft()])
    clock.advance(hours=23)

    assert lifecycle.persist_drafts("biz_001", [_draft()]) == []
    assert len(store.list_alerts("biz_001")) == 1


def test_duplicates_within_one_batch_are_suppressed(lifecycle):
    """Two drafts with one title in a single batch yield one alert"""
    created = lifecycle.persist_drafts("biz_001", [_draft(), _draft()])
    assert len(created) == 1


def test_same_title_after_window_creates_again(lifecycle, store, clock):
    """Once the window has passed the title may alert again"""
    lifecycle.persist_drafts("biz_001", [_draft()])
    clock.advance(hours=25)

    assert len(lifecycle.persist_drafts("biz_001", [_draft()])) == 1
    assert len(store.list_alerts("biz_001")) == 2


def test_dedup_is_per_business(lifecycle, store):
    """Another business may carry the same title"""
    add_business(store, "biz_002", "user_002")
    lifecycle.persist_drafts("biz_001", [_draft()])

    assert len(lifecycle.persist_drafts("biz_002", [_draft()])) == 1


def test_forward_transitions(lifecycle, clock):
    """new -> in_progress -> resolved, with updated_at refreshed"""
    alert = lifecycle.persist_drafts("biz_001", [_draft()])[0]

    clock.advance(minutes=5)
    in_progress = lifecycle.update_alert(alert.id, "user_001", AlertUpdate(status=AlertStatus.IN_PROGRESS))
    assert in_progress.status == AlertStatus.IN_PROGRESS
    assert in_progress.updated_at == clock.now

    resolved = lifecycle.update_alert(alert.id, "user_001", AlertUpdate(status="resolved", userNotes="Invoice verified"))
    assert resolved.status == AlertStatus.RESOLVED
    assert resolved.user_notes == "Invoice verified"


def test_new_can_resolve_directly(lifecycle):
    """Skipping in_progress is allowed"""
    alert = lifecycle.persist_drafts("biz_001", [_draft()])[0]
    resolved = lifecycle.update_alert(alert.id, "user_001", AlertUpdate(status=AlertStatus.RESOLVED))
    assert resolved.status == AlertStatus.RESOLVED


def test_resolved_is_final(lifecycle):
    """No status change or note edits after resolution"""
    alert = lifecycle.persist_drafts("biz_001", [_draft()])[0]
    lifecycle.update_alert(alert.id, "user_001", AlertUpdate(status=AlertStatus.RESOLVED))

    with pytest.raises(InvalidTransitionError):
        lifecycle.update_alert(alert.id, "user_001", AlertUpdate(status=AlertStatus.IN_PROGRESS))

    with pytest.raises(InvalidTransitionError):
        lifecycle.update_alert(alert.id, "user_001", AlertUpdate(user_notes="too late"))


def test_backward_transition_rejected():
    """in_progress cannot go back to new"""
    with pytest.raises(InvalidTransitionError):
        check_transition(AlertStatus.IN_PROGRESS, AlertStatus.NEW)

    check_transition(AlertStatus.NEW, AlertStatus.NEW)


def test_update_cannot_target_new():
    """The update model only accepts in_progress or resolved"""
    with pytest.raises(ValueError):
        AlertUpdate(status="new")


def test_notes_only_update_keeps_status(lifecycle):
    """Notes can be edited without moving the alert"""
    alert = lifecycle.persist_drafts("biz_001", [_draft()])[0]
    updated = lifecycle.update_alert(alert.id, "user_001", AlertUpdate(userNotes="Looking into it"))

    assert updated.status == AlertStatus.NEW
    assert updated.user_notes == "Looking into it"


def test_update_by_non_owner_rejected(lifecycle, store):
    """Only the owner of the alert's business may change it"""
    add_business(store, "biz_002", "user_002")
    alert = lifecycle.persist_drafts("biz_001", [_draft()])[0]

    with pytest.raises(OwnershipError):
        lifecycle.update_alert(alert.id, "user_002", AlertUpdate(status=AlertStatus.RESOLVED))

    assert store.get_alert(alert.id).status == AlertStatus.NEW


def test_update_unknown_alert(lifecycle):
    """Unknown alert ids raise a not-found error"""
    with pytest.raises(AlertNotFoundError):
        lifecycle.update_alert("missing", "user_001", AlertUpdate(status=AlertStatus.RESOLVED))


def test_list_alerts_newest_first(lifecycle, clock):
    lifecycle.persist_drafts("biz_001", [_draft("first")])
    clock.advance(hours=1)
    lifecycle.persist_drafts("biz_001", [_draft("second")])

    assert [a.title for a in lifecycle.list_alerts("biz_001")] == ["second", "first"]
    assert [a.title for a in lifecycle.list_alerts("biz_001", limit=1)] == ["second"]
