from prometheus_client import Counter, Histogram

SYNC_RUNS_TOTAL = Counter(
    "sync_runs_total", "Total number of sync runs", ["status"]
)

PAGES_FETCHED_TOTAL = Counter(
    "activity_pages_fetched_total", "Activity list pages fetched from Strava"
)

ACTIVITIES_SYNCED_TOTAL = Counter(
    "activities_synced_total", "Activities registered in the index", ["outcome"]
)

REQUEST_TIME = Histogram(
    "strava_request_seconds", "Time spent on Strava API requests", ["operation"]
)
