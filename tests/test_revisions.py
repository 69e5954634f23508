from __future__ import annotations

from datetime import datetime, timezone

import pytest

from reviseflow.domain import revisions as rules
from reviseflow.domain.entities import RevisionEntity
from reviseflow.domain.enums import RevisionAction, RevisionStatus
from reviseflow.domain.errors import InvalidSchedule, InvalidTransition, RevisionNotFound, ValidationError

UTC = timezone.utc
COMPLETED = datetime(2024, 1, 7, tzinfo=UTC)


def _revisions(*statuses: RevisionStatus) -> tuple[RevisionEntity, ...]:
    return tuple(
        RevisionEntity(id=f"r{i}", scheduled_date=datetime(2024, 1, 10 + i, tzinfo=UTC), status=status)
        for i, status in enumerate(statuses)
    )


def test_postpone_advances_from_scheduled_date() -> None:
    revisions = _revisions(RevisionStatus.PENDING)

    updated, new_date = rules.postpone(revisions, "r0")

    assert new_date == datetime(2024, 1, 11, tzinfo=UTC)
    assert updated[0].scheduled_date == new_date
    assert updated[0].status == RevisionStatus.PENDING


def test_postpone_lands_on_utc_midnight_and_resets_status() -> None:
    revisions = (
        RevisionEntity(
            id="r0",
            scheduled_date=datetime(2024, 1, 10, 15, 45, tzinfo=UTC),
            status=RevisionStatus.SKIPPED,
        ),
    )

    updated, new_date = rules.postpone(revisions, "r0")

    assert new_date == datetime(2024, 1, 11, tzinfo=UTC)
    assert updated[0].status == RevisionStatus.PENDING


def test_marking_done_twice_refreshes_completed_at() -> None:
    revisions = _revisions(RevisionStatus.PENDING, RevisionStatus.PENDING)
    first = datetime(2024, 1, 10, 8, tzinfo=UTC)
    second = datetime(2024, 1, 10, 9, tzinfo=UTC)

    revisions = rules.mark_done(revisions, "r0", first)
    revisions = rules.mark_done(revisions, "r0", second)

    assert len(revisions) == 2
    assert [r.status for r in revisions] == [RevisionStatus.DONE, RevisionStatus.PENDING]
    assert revisions[0].completed_at == second


def test_skip_clears_completion_and_rejects_done_revisions() -> None:
    revisions = rules.skip(_revisions(RevisionStatus.PENDING), "r0")
    assert revisions[0].status == RevisionStatus.SKIPPED
    assert revisions[0].completed_at is None

    done = rules.mark_done(_revisions(RevisionStatus.PENDING), "r0", COMPLETED)
    with pytest.raises(InvalidTransition):
        rules.skip(done, "r0")
    with pytest.raises(InvalidTransition):
        rules.mark_done(revisions, "r0", COMPLETED)


def test_unknown_revision_id_raises_and_leaves_input_untouched() -> None:
    revisions = _revisions(RevisionStatus.PENDING)

    with pytest.raises(RevisionNotFound):
        rules.apply_action(revisions, "missing", RevisionAction.DONE, COMPLETED)
    assert revisions[0].status == RevisionStatus.PENDING


def test_reschedule_always_resets_to_pending() -> None:
    revisions = rules.mark_done(_revisions(RevisionStatus.PENDING), "r0", COMPLETED)
    new_date = datetime(2024, 2, 1, 12, tzinfo=UTC)

    updated = rules.reschedule(revisions, "r0", new_date, COMPLETED)

    assert updated[0].scheduled_date == new_date
    assert updated[0].status == RevisionStatus.PENDING
    assert updated[0].completed_at is None


def test_reschedule_before_completion_is_rejected() -> None:
    with pytest.raises(InvalidSchedule):
        rules.reschedule(_revisions(RevisionStatus.PENDING), "r0", datetime(2024, 1, 1, tzinfo=UTC), COMPLETED)


def test_apply_action_dispatches_by_status_string() -> None:
    revisions = _revisions(RevisionStatus.PENDING, RevisionStatus.PENDING)

    revisions, new_date = rules.apply_action(revisions, "r0", "postponed", COMPLETED)
    assert new_date == datetime(2024, 1, 11, tzinfo=UTC)

    revisions, new_date = rules.apply_action(revisions, "r1", "skipped", COMPLETED)
    assert new_date is None
    assert revisions[1].status == RevisionStatus.SKIPPED

    with pytest.raises(ValidationError):
        rules.apply_action(revisions, "r0", "archived", COMPLETED)


def test_record_reminder_counts_sends() -> None:
    sent_at = datetime(2024, 1, 10, 0, 30, tzinfo=UTC)
    revisions = _revisions(RevisionStatus.PENDING, RevisionStatus.PENDING)

    revisions = rules.record_reminder(revisions, ["r1"], sent_at)
    revisions = rules.record_reminder(revisions, ["r1"], sent_at)

    assert revisions[0].reminders_sent == 0
    assert revisions[1].reminders_sent == 2
    assert revisions[1].last_reminder_sent == sent_at
