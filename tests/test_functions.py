"""Tests for the built-in formula functions and reference resolution."""

import math
from datetime import date, datetime, timedelta, timezone

import pytest

from projectflow.formula.functions import (
    aggregate_avg,
    aggregate_count,
    aggregate_sum,
    date_diff,
    parse_date,
    parse_float_prefix,
)
from projectflow.formula.references import coerce_columns, find_column, resolve_scalar
from projectflow.sheets import Column


@pytest.fixture
def progress() -> Column:
    return Column(id="progress", title="Progress", type="number")


class TestParseFloatPrefix:
    """Test numeric coercion for aggregates."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (5, 5),
            (2.5, 2.5),
            ("10", 10),
            ("  7.25 ", 7.25),
            ("12abc", 12),
            ("-3", -3),
            ("1e2", 100.0),
            ("abc", 0),
            ("", 0),
            (None, 0),
            (True, 0),
            (False, 0),
            ([1, 2], 0),
            ("=SUM([A])", 0),
            ("1_000", 1),
        ],
    )
    def test_parse_float_prefix(self, value, expected):
        assert parse_float_prefix(value) == expected

    def test_past_int_digit_limit(self):
        assert parse_float_prefix("9" * 5000) == math.inf


class TestAggregateFunctions:
    """Test aggregate functions called directly."""

    def test_sum(self, progress):
        rows = [{"progress": 1}, {"progress": "2"}, {"progress": None}, {}]
        assert aggregate_sum(rows, progress) == 3

    def test_count(self, progress):
        rows = [{"progress": 0}, {"progress": ""}, {"progress": None}, {"progress": "x"}, {}]
        assert aggregate_count(rows, progress) == 2

    def test_count_includes_false(self, progress):
        assert aggregate_count([{"progress": False}], progress) == 1

    def test_avg(self, progress):
        rows = [{"progress": 1}, {"progress": 2}]
        assert aggregate_avg(rows, progress) == 1.5

    def test_avg_empty(self, progress):
        assert aggregate_avg([], progress) == 0


class TestDates:
    """Test date parsing and DATEDIFF."""

    def test_parse_iso_date_is_utc_midnight(self):
        assert parse_date("2024-01-11") == datetime(2024, 1, 11, tzinfo=timezone.utc)

    def test_parse_with_offset(self):
        parsed = parse_date("2024-01-11T10:00:00+02:00")
        assert parsed == datetime(2024, 1, 11, 8, 0, tzinfo=timezone.utc)

    def test_parse_utc_designator(self):
        expected = datetime(2024, 1, 11, 10, 30, tzinfo=timezone.utc)
        assert parse_date("2024-01-11T10:30:00Z") == expected
        assert parse_date("2024-01-11T10:30:00.000Z") == expected
        assert parse_date("2024-01-11T12:30:00+0200") == expected

    def test_parse_long_fraction(self):
        parsed = parse_date("2024-01-11T10:30:00.1234567Z")
        assert parsed.microsecond == 123456

    def test_parse_other_layouts(self):
        expected = datetime(2024, 1, 11, tzinfo=timezone.utc)
        assert parse_date("2024/01/11") == expected
        assert parse_date("01/11/2024") == expected
        assert parse_date("Jan 11, 2024") == expected

    def test_parse_date_objects(self):
        assert parse_date(date(2024, 1, 11)) == datetime(2024, 1, 11, tzinfo=timezone.utc)
        assert parse_date(datetime(2024, 1, 11, 6)) == datetime(2024, 1, 11, 6, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "value",
        ["not-a-date", "", "   ", None, 0, 20240111, "2024-02-30", "20240111", "2024-W02-4", "2024-011"],
    )
    def test_parse_invalid(self, value):
        assert parse_date(value) is None

    def test_date_diff_rounds_up(self):
        start = Column(id="start", title="Start")
        end = Column(id="end", title="End")
        row = {"start": "2024-01-01T00:00:00", "end": "2024-01-01T00:00:01"}
        assert date_diff(row, end, start) == 1
        assert date_diff(row, start, end) == 0

    def test_date_diff_with_datetime_values(self):
        start = Column(id="start", title="Start")
        end = Column(id="end", title="End")
        first = datetime(2024, 3, 1, tzinfo=timezone.utc)
        row = {"start": first, "end": first + timedelta(days=45)}
        assert date_diff(row, end, start) == 45


class TestReferenceResolver:
    """Test column lookup and value conversion."""

    def test_find_by_title_then_id(self):
        columns = [Column(id="a", title="Alpha"), Column(id="b", title="Beta")]
        assert find_column("Beta", columns).id == "b"
        assert find_column("a", columns).id == "a"
        assert find_column("Gamma", columns) is None

    def test_find_accepts_iterators(self):
        columns = iter([Column(id="a", title="Alpha")])
        assert find_column("a", columns).title == "Alpha"

    @pytest.mark.parametrize(
        "value, expected",
        [
            (5, 5),
            (1.5, 1.5),
            (True, True),
            ("text", "text"),
            ("=1+1", 0),
            (None, 0),
            ([{"id": "c1"}], 0),
        ],
    )
    def test_resolve_scalar(self, value, expected):
        assert resolve_scalar(value) == expected

    def test_coerce_columns(self):
        columns = coerce_columns(
            [Column(id="a", title="A"), {"id": "b", "title": "B", "type": "date"}, {"id": "c"}]
        )
        assert [c.id for c in columns] == ["a", "b"]
        assert columns[1].type == "date"
