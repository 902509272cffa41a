"""
Unit tests for statistics aggregation.
"""

import pytest

from callsight.core.models import AnalysisSnapshot, CallRecord
from callsight.core.statistics import calculate_statistics, normalize_sentiment


def _call(i, categories, sentiment=None, phone=None, duration=0):
    return CallRecord(
        id=f"call-{i}",
        phone=phone or f"555-000{i}",
        duration=duration,
        categories=tuple(categories),
        sentiment=sentiment,
    )


class TestNormalizeSentiment:

    @pytest.mark.parametrize("value,expected", [
        ("positive", "positive"),
        ("Negative", "negative"),
        ("NEUTRAL", "neutral"),
        ("mixed", "neutral"),
        ("", "neutral"),
        (None, "neutral"),
    ])
    def test_normalize(self, value, expected):
        assert normalize_sentiment(value) == expected


class TestCalculateStatistics:

    def test_two_call_example(self):
        calls = [
            _call(1, ["A", "B"], "positive", duration=100),
            _call(2, ["A"], "negative", duration=50),
        ]

        snapshot = calculate_statistics(calls, generated_at="2024-01-01T00:00:00.000Z")

        a, b = snapshot.categories
        assert (a.category, a.count, a.percentage) == ("A", 2, 100.0)
        assert (b.category, b.count, b.percentage) == ("B", 1, 50.0)
        assert a.sentiment.positive == 1 and a.sentiment.negative == 1
        assert b.sentiment.positive == 1 and b.sentiment.negative == 0
        assert snapshot.summary.total_duration == 150
        assert snapshot.summary.avg_duration == 75
        distribution = snapshot.summary.sentiment_distribution
        assert (distribution.positive, distribution.neutral, distribution.negative) == (1, 0, 1)
        assert snapshot.total_calls == 2
        assert snapshot.categorized_calls == 2
        assert snapshot.generated_at == "2024-01-01T00:00:00.000Z"

    def test_empty_input(self):
        snapshot = calculate_statistics([])

        assert snapshot.total_calls == 0
        assert snapshot.categories == ()
        assert snapshot.summary.avg_duration == 0
        assert snapshot.summary.total_duration == 0
        assert snapshot.summary.top_categories == ()

    def test_sorted_by_count_with_first_seen_ties(self):
        calls = [
            _call(1, ["X", "Y"]),
            _call(2, ["Z", "Y"]),
            _call(3, ["Z"]),
        ]

        snapshot = calculate_statistics(calls)

        # Y and Z tie on 2; Y was seen first
        assert [c.category for c in snapshot.categories] == ["Y", "Z", "X"]

    def test_unknown_sentiment_counts_as_neutral(self):
        snapshot = calculate_statistics([_call(1, ["A"], "ecstatic"), _call(2, ["A"], None)])

        assert snapshot.summary.sentiment_distribution.neutral == 2
        assert snapshot.categories[0].sentiment.neutral == 2

    def test_percentages_may_exceed_hundred_in_total(self):
        snapshot = calculate_statistics([_call(1, ["A", "B", "C"])])

        assert sum(c.percentage for c in snapshot.categories) == 300.0

    def test_customers_counted_by_distinct_phone(self, sample_calls):
        calls = [
            CallRecord(id=c.id, phone=c.phone, duration=c.duration, categories=("SERVICE",))
            for c in sample_calls
        ]

        snapshot = calculate_statistics(calls)

        assert snapshot.categories[0].count == 3
        assert snapshot.categories[0].customers == 2

    def test_top_categories_limited_to_ten(self):
        calls = [_call(i, [f"CAT {i:02d}"]) for i in range(12)]

        snapshot = calculate_statistics(calls)

        assert len(snapshot.categories) == 12
        assert len(snapshot.summary.top_categories) == 10
        assert snapshot.summary.top_categories[0] == "CAT 00"

    def test_input_calls_preserved(self):
        calls = [_call(1, ["A"]), _call(2, ["B"])]

        snapshot = calculate_statistics(calls)

        assert snapshot.calls == tuple(calls)

    def test_snapshot_serializes_round_trip(self):
        calls = [_call(1, ["A", "B"], "positive", duration=100)]
        snapshot = calculate_statistics(calls, generated_at="2024-01-01T00:00:00.000Z")

        data = snapshot.to_dict()

        assert data["totalCalls"] == 1
        assert data["summary"]["sentimentDistribution"] == {
            "positive": 1, "neutral": 0, "negative": 0,
        }
        assert data["summary"]["topCategories"] == ["A", "B"]
        assert AnalysisSnapshot.from_dict(data) == snapshot
