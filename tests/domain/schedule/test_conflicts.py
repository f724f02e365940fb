"""Tests for conflict detection."""

from datetime import date, time

from airtime.domain.library.models import Song
from airtime.domain.schedule.conflicts import Severity, check_conflict
from airtime.domain.schedule.models import OneTimeBroadcast, RecurringSlot

TUESDAY = 2
SONGS = {
    "ten-min": Song(id="ten-min", title="Ten", media_ref="/m/10.mp3", duration=600),
    "twenty-min": Song(id="twenty-min", title="Twenty", media_ref="/m/20.mp3", duration=1200),
}


def slot(
    slot_id: str,
    start: str,
    end: str,
    day: int = TUESDAY,
    active: bool = True,
) -> RecurringSlot:
    sh, sm = map(int, start.split(":"))
    eh, em = map(int, end.split(":"))
    return RecurringSlot(
        id=slot_id,
        title=f"Slot {slot_id}",
        day_of_week=day,
        start_time=time(sh, sm),
        end_time=time(eh, em),
        active=active,
        song_id="ten-min",
    )


def broadcast(
    broadcast_id: str,
    on: date,
    start: time,
    song_id: str = "ten-min",
    consumed: bool = False,
) -> OneTimeBroadcast:
    return OneTimeBroadcast(
        id=broadcast_id,
        title=f"Broadcast {broadcast_id}",
        date=on,
        start_time=start,
        song_id=song_id,
        consumed=consumed,
    )


class TestSlotVsSlot:
    """Recurring slots on the same weekday."""

    def test_containment_is_blocking(self) -> None:
        """Tuesday 14:00-15:00 fully contains 14:30-14:45."""
        existing = [slot("afternoon", "14:00", "15:00")]

        report = check_conflict(slot("inner", "14:30", "14:45"), existing)

        assert report.severity == Severity.BLOCKING
        assert report.is_blocking
        assert [c.event.id for c in report.conflicts] == ["afternoon"]

    def test_exact_duplicate_is_blocking(self) -> None:
        report = check_conflict(slot("new", "14:00", "15:00"), [slot("old", "14:00", "15:00")])

        assert report.severity == Severity.BLOCKING

    def test_partial_overlap_is_warning(self) -> None:
        report = check_conflict(slot("new", "14:30", "15:30"), [slot("old", "14:00", "15:00")])

        assert report.severity == Severity.WARNING
        assert not report.is_blocking

    def test_adjacent_windows_do_not_conflict(self) -> None:
        report = check_conflict(slot("new", "15:00", "16:00"), [slot("old", "14:00", "15:00")])

        assert not report.has_conflicts
        assert report.severity is None

    def test_other_weekday_does_not_conflict(self) -> None:
        report = check_conflict(
            slot("new", "14:00", "15:00", day=3), [slot("old", "14:00", "15:00")]
        )

        assert not report.has_conflicts

    def test_candidate_skips_itself(self) -> None:
        """Editing a slot compares it against everything but its old self."""
        existing = [slot("same", "14:00", "15:00")]

        report = check_conflict(slot("same", "14:00", "15:30"), existing)

        assert not report.has_conflicts

    def test_inactive_slot_ignored(self) -> None:
        existing = [slot("old", "14:00", "15:00", active=False)]

        assert not check_conflict(slot("new", "14:00", "15:00"), existing).has_conflicts

    def test_worst_severity_reported(self) -> None:
        existing = [slot("b-partial", "14:30", "15:30"), slot("a-contained", "14:10", "14:20")]

        report = check_conflict(slot("new", "14:00", "15:00"), existing)

        assert report.severity == Severity.BLOCKING
        assert [c.event.id for c in report.conflicts] == ["a-contained", "b-partial"]
        assert [c.severity for c in report.conflicts] == [Severity.BLOCKING, Severity.WARNING]


class TestBroadcasts:
    """Broadcasts against slots and other broadcasts."""

    def test_broadcast_inside_slot_is_blocking(self) -> None:
        candidate = broadcast("b1", date(2024, 1, 2), time(14, 10))

        report = check_conflict(candidate, [slot("afternoon", "14:00", "15:00")], SONGS)

        assert report.severity == Severity.BLOCKING

    def test_broadcast_straddling_slot_end_is_warning(self) -> None:
        candidate = broadcast("b1", date(2024, 1, 2), time(14, 55))

        report = check_conflict(candidate, [slot("afternoon", "14:00", "15:00")], SONGS)

        assert report.severity == Severity.WARNING

    def test_broadcast_on_other_weekday(self) -> None:
        candidate = broadcast("b1", date(2024, 1, 3), time(14, 10))

        report = check_conflict(candidate, [slot("afternoon", "14:00", "15:00")], SONGS)

        assert not report.has_conflicts

    def test_slot_candidate_against_broadcast(self) -> None:
        existing = [broadcast("b1", date(2024, 1, 2), time(14, 10))]

        report = check_conflict(slot("afternoon", "14:00", "15:00"), existing, SONGS)

        assert report.severity == Severity.BLOCKING

    def test_broadcast_past_midnight_hits_next_day_slot(self) -> None:
        """Monday 23:50 for 20 minutes runs into Tuesday 00:00-01:00."""
        candidate = broadcast("late", date(2024, 1, 1), time(23, 50), song_id="twenty-min")

        report = check_conflict(candidate, [slot("night", "00:00", "01:00")], SONGS)

        assert report.severity == Severity.BLOCKING

    def test_overlapping_broadcasts(self) -> None:
        existing = [broadcast("b1", date(2024, 1, 2), time(14, 0))]
        candidate = broadcast("b2", date(2024, 1, 2), time(14, 5))

        report = check_conflict(candidate, existing, SONGS)

        assert report.severity == Severity.WARNING

    def test_consumed_broadcast_ignored(self) -> None:
        existing = [broadcast("b1", date(2024, 1, 2), time(14, 0), consumed=True)]

        report = check_conflict(broadcast("b2", date(2024, 1, 2), time(14, 0)), existing, SONGS)

        assert not report.has_conflicts

    def test_unknown_song_has_no_window(self) -> None:
        candidate = broadcast("b1", date(2024, 1, 2), time(14, 10), song_id="missing")

        report = check_conflict(candidate, [slot("afternoon", "14:00", "15:00")], SONGS)

        assert not report.has_conflicts


class TestIdempotence:
    """check_conflict is a pure function of its inputs."""

    def test_same_inputs_same_report(self) -> None:
        existing = [
            slot("afternoon", "14:00", "15:00"),
            broadcast("b1", date(2024, 1, 2), time(14, 40)),
        ]
        snapshot = list(existing)
        candidate = slot("inner", "14:30", "14:45")

        first = check_conflict(candidate, existing, SONGS)
        second = check_conflict(candidate, existing, SONGS)

        assert first == second
        assert existing == snapshot
