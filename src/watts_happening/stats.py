from typing import Iterable, List, Optional

from watts_happening.models import Activity, ActivityStats, DistancePoint, PowerBin

POWER_HISTOGRAM_BINS = 20


def average_of(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the truthy values, None if there are none."""
    present = [value for value in values if value]
    if not present:
        return None
    return sum(present) / len(present)


def power_histogram(powers: List[float], bins: int = POWER_HISTOGRAM_BINS) -> List[PowerBin]:
    """Equal-width histogram of average power from 0 to the highest value."""
    if not powers:
        return []
    width = max(powers) / bins
    counts = [0] * bins
    for power in powers:
        counts[min(int(power / width), bins - 1)] += 1
    return [
        PowerBin(lower=i * width, upper=(i + 1) * width, count=count)
        for i, count in enumerate(counts)
    ]


def calculate_stats(activities: Iterable[Activity]) -> ActivityStats:
    activities = list(activities)
    if not activities:
        return ActivityStats()

    powers = [a.average_watts for a in activities if a.average_watts and a.average_watts > 0]
    series = sorted(
        (DistancePoint(start_date=a.start_date, distance_km=a.distance / 1000) for a in activities),
        key=lambda point: point.start_date,
    )

    return ActivityStats(
        total_activities=len(activities),
        total_distance_km=sum(a.distance for a in activities) / 1000,
        total_hours=sum(a.moving_time for a in activities) / 3600,
        average_power=average_of(a.average_watts for a in activities),
        average_heartrate=average_of(a.average_heartrate for a in activities),
        max_speed_kmh=max(a.max_speed for a in activities) * 3.6,
        distance_series=series,
        power_histogram=power_histogram(powers),
    )


def format_stats(stats: ActivityStats) -> str:
    avg_power = f"{stats.average_power:.0f} W" if stats.average_power else "N/A"
    avg_hr = f"{stats.average_heartrate:.0f} bpm" if stats.average_heartrate else "N/A"
    lines = [
        f"Total Activities: {stats.total_activities}",
        f"Total Distance: {stats.total_distance_km:.0f} km",
        f"Total Time: {stats.total_hours:.0f} hrs",
        f"Avg Power: {avg_power}",
        f"Avg Heart Rate: {avg_hr}",
        f"Max Speed: {stats.max_speed_kmh:.1f} km/h",
    ]
    if stats.power_histogram:
        lines.append("Average power distribution:")
        for power_bin in stats.power_histogram:
            if power_bin.count:
                lines.append(
                    f"  {power_bin.lower:5.0f}-{power_bin.upper:<5.0f} W {'#' * power_bin.count} ({power_bin.count})"
                )
    else:
        lines.append("No power data available")
    return "\n".join(lines)
