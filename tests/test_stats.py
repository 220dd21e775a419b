import pytest

from factories import make_activity
from watts_happening.stats import average_of, calculate_stats, format_stats, power_histogram


def test_calculate_stats_empty():
    stats = calculate_stats([])

    assert stats.total_activities == 0
    assert stats.total_distance_km == 0.0
    assert stats.average_power is None
    assert stats.average_heartrate is None
    assert stats.power_histogram == []


def test_calculate_stats_totals_and_averages():
    activities = [
        make_activity(1, distance=30000.0, moving_time=3600, average_watts=200.0, max_speed=12.0),
        make_activity(2, distance=15000.0, moving_time=1800, average_watts=None, average_heartrate=None),
        make_activity(3, distance=45000.0, moving_time=5400, average_watts=250.0, average_heartrate=150.0),
    ]

    stats = calculate_stats(activities)

    assert stats.total_activities == 3
    assert stats.total_distance_km == pytest.approx(90.0)
    assert stats.total_hours == pytest.approx(3.0)
    assert stats.average_power == pytest.approx(225.0)
    assert stats.average_heartrate == pytest.approx(145.0)
    assert stats.max_speed_kmh == pytest.approx(54.0)
    assert [point.start_date for point in stats.distance_series] == [
        "2024-03-02T18:00:00Z",
        "2024-03-03T18:00:00Z",
        "2024-03-04T18:00:00Z",
    ]


def test_average_of_ignores_missing_and_zero():
    assert average_of([None, 0, 100.0, 200.0]) == pytest.approx(150.0)
    assert average_of([None, None]) is None


def test_power_histogram_bins():
    bins = power_histogram([100.0, 150.0, 200.0], bins=4)

    assert [b.count for b in bins] == [0, 0, 1, 2]
    assert bins[-1].upper == pytest.approx(200.0)
    assert sum(b.count for b in bins) == 3


def test_format_stats_without_power():
    stats = calculate_stats([make_activity(1, average_watts=None)])

    text = format_stats(stats)

    assert "Total Activities: 1" in text
    assert "Avg Power: N/A" in text
    assert "No power data available" in text
