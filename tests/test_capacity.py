"""Tests for capacity projections."""

from __future__ import annotations

from studyslot.capacity import (
    active_count,
    active_participants,
    active_record_for,
    is_full,
    spots_left,
)
from studyslot.models.experiment import Participant, ParticipantStatus


def _with(session, *entries: tuple[str, ParticipantStatus]):
    participants = [Participant(user=u, status=s) for u, s in entries]
    return session.model_copy(update={"participants": participants})


class TestCapacity:
    def test_empty_session(self, make_session):
        session = make_session(max_participants=3)
        assert active_count(session) == 0
        assert spots_left(session) == 3
        assert not is_full(session)

    def test_cancelled_records_do_not_count(self, make_session):
        session = _with(
            make_session(max_participants=2),
            ("u1", ParticipantStatus.CANCELLED),
            ("u1", ParticipantStatus.REGISTERED),
            ("u2", ParticipantStatus.NO_SHOW),
        )
        assert active_count(session) == 2
        assert [p.user for p in active_participants(session)] == ["u1", "u2"]
        assert is_full(session)

    def test_every_non_cancelled_status_holds_a_seat(self, make_session):
        held = [s for s in ParticipantStatus if s != ParticipantStatus.CANCELLED]
        entries = [(f"u{i}", s) for i, s in enumerate(held)]
        session = _with(make_session(max_participants=10), *entries)
        assert active_count(session) == len(held)

    def test_spots_left_never_negative(self, make_session):
        # Only reachable through data written before capacity checks existed.
        session = _with(
            make_session(max_participants=1),
            ("u1", ParticipantStatus.REGISTERED),
            ("u2", ParticipantStatus.REGISTERED),
        )
        assert spots_left(session) == 0

    def test_active_record_for_skips_cancelled(self, make_session):
        session = _with(
            make_session(),
            ("u1", ParticipantStatus.CANCELLED),
            ("u1", ParticipantStatus.CONFIRMED),
        )
        record = active_record_for(session, "u1")
        assert record is not None
        assert record.status == ParticipantStatus.CONFIRMED
        assert active_record_for(session, "u2") is None
