"""Tests for session create/edit/delete."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from studyslot import registration, schedule
from studyslot.errors import (
    CapacityBelowActive,
    ExperimentLocked,
    InvalidSession,
    SessionNotFound,
)
from studyslot.models.experiment import ExperimentStatus

START = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class TestAddSession:
    def test_defaults_come_from_experiment(self, make_experiment):
        exp = make_experiment(
            status=ExperimentStatus.APPROVED, sessions=[], location="Lab 4", max_participants=6
        )
        updated, session = schedule.add_session(exp, START, START + timedelta(hours=1))
        assert session.location == "Lab 4"
        assert session.max_participants == 6
        assert updated.sessions == [session]

    def test_explicit_values_override_defaults(self, make_experiment):
        exp = make_experiment(status=ExperimentStatus.DRAFT, sessions=[], location="Lab 4")
        _, session = schedule.add_session(
            exp, START, START + timedelta(minutes=30), location="Room 9", max_participants=3
        )
        assert session.location == "Room 9"
        assert session.max_participants == 3

    def test_end_must_follow_start(self, make_experiment):
        exp = make_experiment(status=ExperimentStatus.APPROVED, sessions=[])
        with pytest.raises(InvalidSession, match="endTime must be after startTime"):
            schedule.add_session(exp, START, START)

    @pytest.mark.parametrize("status", [ExperimentStatus.COMPLETED, ExperimentStatus.CANCELLED])
    def test_locked_experiments(self, make_experiment, status):
        exp = make_experiment(status=status)
        with pytest.raises(ExperimentLocked):
            schedule.add_session(exp, START, START + timedelta(hours=1))


class TestUpdateSession:
    def test_merged_times_are_validated(self, make_experiment):
        exp = make_experiment()
        session = exp.sessions[0]
        with pytest.raises(InvalidSession):
            schedule.update_session(
                exp, session.id, {"end_time": session.start_time - timedelta(minutes=1)}
            )

    def test_update_keeps_participants(self, make_experiment):
        exp = make_experiment()
        sid = exp.sessions[0].id
        exp, _ = registration.register(exp, sid, "u1")
        updated, session = schedule.update_session(
            exp, sid, {"location": "Room 2", "notes": "Bring ID"}
        )
        assert session.location == "Room 2"
        assert session.notes == "Bring ID"
        assert [p.user for p in session.participants] == ["u1"]
        assert updated.get_session(sid) == session

    def test_capacity_cannot_drop_below_active(self, make_experiment):
        exp = make_experiment()
        sid = exp.sessions[0].id
        exp, _ = registration.register(exp, sid, "u1")
        exp, _ = registration.register(exp, sid, "u2")
        with pytest.raises(CapacityBelowActive):
            schedule.update_session(exp, sid, {"max_participants": 1})

    def test_unknown_field(self, make_experiment):
        exp = make_experiment()
        with pytest.raises(InvalidSession):
            schedule.update_session(exp, exp.sessions[0].id, {"participants": []})

    def test_unknown_session(self, make_experiment):
        with pytest.raises(SessionNotFound):
            schedule.update_session(make_experiment(), "missing", {"location": "x"})


class TestDeleteSession:
    def test_last_session_of_open_experiment_reverts_to_approved(self, make_experiment):
        exp = make_experiment()
        updated = schedule.delete_session(exp, exp.sessions[0].id)
        assert updated.sessions == []
        assert updated.status == ExperimentStatus.APPROVED

    def test_remaining_sessions_keep_status(self, make_experiment, make_session):
        exp = make_experiment(sessions=[make_session(days=3), make_session(days=4)])
        updated = schedule.delete_session(exp, exp.sessions[0].id)
        assert len(updated.sessions) == 1
        assert updated.status == ExperimentStatus.OPEN

    def test_in_progress_keeps_status(self, make_experiment):
        exp = make_experiment(status=ExperimentStatus.IN_PROGRESS)
        updated = schedule.delete_session(exp, exp.sessions[0].id)
        assert updated.status == ExperimentStatus.IN_PROGRESS

    def test_locked(self, make_experiment):
        exp = make_experiment(status=ExperimentStatus.CANCELLED)
        with pytest.raises(ExperimentLocked):
            schedule.delete_session(exp, exp.sessions[0].id)
