from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from medreminder.reminders.prescription_parser import parse_line, parse_prescription
from medreminder.reminders.schemas import ParsedPrescription
from medreminder.reminders.service import occurrence_times, parse_clock_time

UTC = timezone.utc


@pytest.mark.parametrize(
    "line, expected",
    [
        ("Paracetamol 2 tablets every 8 hours", ("Paracetamol", 2, 8, None)),
        ("Ibuprofen 1 pill", ("Ibuprofen", 1, None, None)),
        ("Amoxicillin 3 capsules every 6 hrs", ("Amoxicillin", 3, 6, None)),
        ("Vitamin D 1 tablet at 08:30", ("Vitamin D", 1, None, "08:30")),
        ("Take 1 tablet of Aspirin at 09:00", ("Aspirin", 1, None, "09:00")),
        ("take 2 of Cetirizine", ("Cetirizine", 2, None, None)),
        ("Take 1 capsule of Omeprazole every 12 hours", ("Omeprazole", 1, 12, None)),
        ("Zinc 0 tabs", ("Zinc", 1, None, None)),
        ("Paracetamol 2 tablets every 8 hours after food", ("Paracetamol", 2, 8, None)),
        ("Ibuprofen 400mg", ("Ibuprofen", 400, None, None)),
        ("Amoxicillin 1 capsule twice daily", ("Amoxicillin", 1, None, None)),
        ("Metformin 1 tablet after dinner at 20:00", ("Metformin", 1, None, "20:00")),
    ],
)
def test_parse_line(line, expected):
    item = parse_line(line)
    assert (item.name, item.count, item.every_hours, item.at_time) == expected


@pytest.mark.parametrize("line", ["", "   ", "Drink water", "every 8 hours", "12"])
def test_unrecognised_lines_are_skipped(line):
    assert parse_line(line) is None


def test_parse_prescription_multiline():
    text = "  Paracetamol 2 tablets every 8 hours  \r\n\r\nRest well\nTake 1 tablet of Aspirin at 21:15\n"
    parsed = parse_prescription(text)
    assert [p.name for p in parsed] == ["Paracetamol", "Aspirin"]
    assert parsed[1].at_time == "21:15"


def test_every_hours_occurrences():
    start = datetime(2030, 1, 1, 6, 0, tzinfo=UTC)
    item = ParsedPrescription(name="Paracetamol", every_hours=8)
    times = occurrence_times(item, start, days=7, tz=ZoneInfo("UTC"))
    assert len(times) == 21
    assert times[0] == start
    assert times[1] == datetime(2030, 1, 1, 14, 0, tzinfo=UTC)
    assert times[-1] == datetime(2030, 1, 7, 22, 0, tzinfo=UTC)


def test_every_hours_rounds_up_per_day():
    item = ParsedPrescription(name="X", every_hours=5)
    start = datetime(2030, 1, 1, tzinfo=UTC)
    assert len(occurrence_times(item, start, days=7, tz=ZoneInfo("UTC"))) == 7 * 5


def test_every_hours_wins_over_at_time():
    item = ParsedPrescription(name="X", every_hours=12, at_time="09:00")
    start = datetime(2030, 1, 1, tzinfo=UTC)
    assert len(occurrence_times(item, start, days=7, tz=ZoneInfo("UTC"))) == 14


def test_at_time_uses_local_timezone():
    item = ParsedPrescription(name="Aspirin", at_time="09:00")
    start = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)
    times = occurrence_times(item, start, days=3, tz=ZoneInfo("Asia/Kolkata"))
    # 09:00 IST is 03:30 UTC
    assert times == [
        datetime(2030, 1, 1, 3, 30, tzinfo=UTC),
        datetime(2030, 1, 2, 3, 30, tzinfo=UTC),
        datetime(2030, 1, 3, 3, 30, tzinfo=UTC),
    ]


def test_no_schedule_yields_nothing():
    item = ParsedPrescription(name="Aspirin")
    assert occurrence_times(item, datetime(2030, 1, 1, tzinfo=UTC), days=7, tz=ZoneInfo("UTC")) == []


def test_invalid_schedules_raise():
    start = datetime(2030, 1, 1, tzinfo=UTC)
    with pytest.raises(ValueError):
        occurrence_times(ParsedPrescription(name="A", every_hours=0), start, days=7, tz=ZoneInfo("UTC"))
    with pytest.raises(ValueError):
        occurrence_times(ParsedPrescription(name="A", at_time="9am"), start, days=7, tz=ZoneInfo("UTC"))


@pytest.mark.parametrize("value", ["24:00", "12:60", "ab:cd", "1200"])
def test_parse_clock_time_rejects(value):
    with pytest.raises(ValueError):
        parse_clock_time(value)
