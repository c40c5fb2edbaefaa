"""Tests for the role-specific experiment views."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from studyslot import registration, visibility
from studyslot.models.experiment import ExperimentStatus

S = ExperimentStatus
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class TestForSubject:
    def test_past_and_full_sessions_are_hidden(self, make_experiment, make_session):
        past = make_session(days=-1)
        full = make_session(days=3, max_participants=1)
        upcoming = make_session(days=5)
        exp = make_experiment(sessions=[past, full, upcoming])
        exp, _ = registration.register(exp, full.id, "someone-else")

        visible = visibility.for_subject([exp], "u1", NOW)
        assert len(visible) == 1
        assert [s.id for s in visible[0].sessions] == [upcoming.id]

    def test_session_starting_exactly_now_is_hidden(self, make_experiment, make_session):
        session = make_session(days=1)
        exp = make_experiment(sessions=[session])
        assert visibility.for_subject([exp], "u1", session.start_time) == []

    def test_experiment_with_no_bookable_session_is_dropped(self, make_experiment, make_session):
        exp = make_experiment(sessions=[make_session(days=-2)])
        assert visibility.for_subject([exp], "u1", NOW) == []

    def test_only_open_experiments(self, make_experiment):
        experiments = [make_experiment(status=s) for s in S]
        visible = visibility.for_subject(experiments, "u1", NOW)
        assert [e.status for e in visible] == [S.OPEN]

    def test_committed_subject_sees_no_other_session(self, make_experiment, make_session):
        first, second = make_session(days=2), make_session(days=4)
        exp = make_experiment(sessions=[first, second])
        exp, _ = registration.register(exp, first.id, "u1")
        assert visibility.for_subject([exp], "u1", NOW) == []
        assert len(visibility.for_subject([exp], "u2", NOW)) == 1

    def test_cancelled_record_does_not_hide_experiment(self, make_experiment):
        exp = make_experiment()
        sid = exp.sessions[0].id
        exp, _ = registration.register(exp, sid, "u1")
        exp, _ = registration.cancel(exp, sid, "u1")
        assert len(visibility.for_subject([exp], "u1", NOW)) == 1

    def test_preserves_input_order(self, make_experiment):
        experiments = [make_experiment(title=f"E{i}") for i in range(4)]
        visible = visibility.for_subject(experiments, "u1", NOW)
        assert [e.title for e in visible] == ["E0", "E1", "E2", "E3"]


class TestForResearcher:
    def test_priority_order(self, make_experiment):
        statuses = [
            S.CANCELLED, S.DRAFT, S.REJECTED, S.OPEN, S.COMPLETED, S.PENDING_REVIEW, S.APPROVED
        ]
        experiments = [make_experiment(status=s, title=s.value) for s in statuses]
        ordered = [e.status for e in visibility.for_researcher(experiments)]
        assert ordered == [
            S.OPEN,
            S.APPROVED,
            S.REJECTED,
            S.PENDING_REVIEW,
            S.DRAFT,
            S.COMPLETED,
            S.CANCELLED,
        ]

    def test_open_and_in_progress_share_a_tier_newest_first(self, make_experiment):
        older = make_experiment(status=S.OPEN, updated_at=NOW - timedelta(days=2))
        newer = make_experiment(status=S.IN_PROGRESS, updated_at=NOW)
        approved = make_experiment(status=S.APPROVED, updated_at=NOW + timedelta(days=1))
        ordered = visibility.for_researcher([older, approved, newer])
        assert [e.id for e in ordered] == [newer.id, older.id, approved.id]


class TestForAdminPending:
    def test_keeps_only_pending_review_in_order(self, make_experiment):
        experiments = [
            make_experiment(status=S.PENDING_REVIEW, title="a"),
            make_experiment(status=S.DRAFT, title="b"),
            make_experiment(status=S.PENDING_REVIEW, title="c"),
        ]
        assert [e.title for e in visibility.for_admin_pending(experiments)] == ["a", "c"]


class TestSessionsOfSubject:
    def test_reduced_to_sessions_with_a_record(self, make_experiment, make_session):
        first, second = make_session(days=2), make_session(days=4)
        exp = make_experiment(sessions=[first, second])
        exp, _ = registration.register(exp, second.id, "u1")
        exp, _ = registration.register(exp, first.id, "u2")

        mine = visibility.sessions_of_subject([exp], "u1")
        assert len(mine) == 1
        assert [s.id for s in mine[0].sessions] == [second.id]

    def test_cancelled_records_are_listed(self, make_experiment):
        exp = make_experiment()
        sid = exp.sessions[0].id
        exp, _ = registration.register(exp, sid, "u1")
        exp, _ = registration.cancel(exp, sid, "u1")
        assert len(visibility.sessions_of_subject([exp], "u1")) == 1

    def test_no_records(self, make_experiment):
        assert visibility.sessions_of_subject([make_experiment()], "u1") == []
