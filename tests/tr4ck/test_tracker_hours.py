import math

from tr4ck.backend.forms import Document, Entry, Profile, Project
from tr4ck.backend.totals import compute_totals, earned, effective_rate, hours_by_date, sum_hours
from tr4ck.backend.utils import DateRange, format_hours, format_money

ENTRIES = (
    Entry(id="a", date="2024-01-01", hours=2),
    Entry(id="b", date="2024-01-05", hours=4.5),
    Entry(id="c", date="2024-01-05", hours=1),
    Entry(id="d", date="2024-02-01", hours=-3),
    Entry(id="e", date="2024-02-02", hours=float("nan")),
)


def test_format_hours():
    assert format_hours(4.0) == "4"
    assert format_hours(4.5) == "4.5"
    assert format_hours(0) == "0"
    assert format_hours(float("nan")) == "0"
    assert format_hours(math.inf) == "0"
    assert format_hours("x") == "0"


def test_format_money():
    assert format_money(382.5) == "$382.50"
    assert format_money(1234.5) == "$1,234.50"
    assert format_money(-5) == "-$5.00"


def test_format_hours_rounds_quarter_hours_half_up():
    assert format_hours(2.25) == "2.3"
    assert format_hours(0.25) == "0.3"
    assert format_hours(0.75) == "0.8"
    assert format_hours(-0.04) == "0"


def test_format_money_rounds_half_up():
    assert format_money(0.125) == "$0.13"
    assert format_money(10.625) == "$10.63"


def test_sum_hours_ignores_negative_and_nan():
    assert sum_hours(ENTRIES) == 7.5
    assert sum_hours(()) == 0


def test_sum_hours_inclusive_range():
    assert sum_hours(ENTRIES, DateRange("2024-01-05", "2024-01-05")) == 5.5
    assert sum_hours(ENTRIES, DateRange(None, "2024-01-01")) == 2


def test_sum_hours_widening_range_never_decreases():
    ranges = [
        DateRange("2024-01-05", "2024-01-05"),
        DateRange("2024-01-02", "2024-01-31"),
        DateRange("2024-01-01", "2024-02-28"),
        DateRange(None, None),
    ]
    sums = [sum_hours(ENTRIES, r) for r in ranges]
    assert sums == sorted(sums)


def test_effective_rate_fallbacks():
    profile = Profile(rate=60)
    assert effective_rate(Project(id="p", name="P", rate=85), profile) == 85
    assert effective_rate(Project(id="p", name="P", rate=None), profile) == 60
    assert effective_rate(Project(id="p", name="P", rate=0), profile) == 0
    assert effective_rate(None, None) == 0


def test_earned_with_zero_rate():
    assert earned(ENTRIES, 0) == 0
    assert earned(ENTRIES, 10, DateRange("2024-01-01", "2024-01-01")) == 20


def test_hours_by_date_sums_duplicates():
    assert hours_by_date(ENTRIES)["2024-01-05"] == 5.5


def test_compute_totals_excludes_archived():
    doc = Document(
        profile=Profile(rate=50),
        projects=(
            Project(id="p1", name="A", rate=100, entries=ENTRIES[:2]),
            Project(id="p2", name="B", entries=()),
            Project(id="p3", name="C", archived=True, entries=ENTRIES[:1]),
        ),
    )
    totals = compute_totals(doc)
    assert totals.hours == 6.5
    assert totals.earned == 650
    assert totals.project_count == 1
