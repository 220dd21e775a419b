from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenResponse(BaseModel):
    access_token: str
    expires_at: int


class Activity(BaseModel):
    """Activity summary as returned by the Strava activities list endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    distance: float
    moving_time: int
    elapsed_time: int
    total_elevation_gain: float = 0.0
    activity_type: str = Field(alias="type")
    sport_type: str
    start_date: str
    start_date_local: str
    timezone: str = ""
    trainer: bool = False
    commute: bool = False
    average_speed: float = 0.0
    max_speed: float = 0.0
    average_watts: Optional[float] = None
    weighted_average_watts: Optional[float] = None
    max_watts: Optional[float] = None
    kilojoules: Optional[float] = None
    device_watts: Optional[bool] = None
    has_heartrate: bool = False
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    average_cadence: Optional[float] = None
    suffer_score: Optional[float] = None
    kudos_count: int = 0
    achievement_count: int = 0
    pr_count: int = 0


class ActivityStreams(BaseModel):
    """Per-second sensor series for one activity. Each series may be missing."""

    time: Optional[List[int]] = None
    watts: Optional[List[float]] = None
    heartrate: Optional[List[int]] = None
    cadence: Optional[List[int]] = None
    velocity_smooth: Optional[List[float]] = None
    altitude: Optional[List[float]] = None

    @property
    def data_points(self) -> int:
        return len(self.time) if self.time else 0


class ActivityWithStreams(Activity):
    """An activity with its streams flattened into one persisted record."""

    streams: Optional[ActivityStreams] = None

    @classmethod
    def from_activity(
        cls, activity: Activity, streams: Optional[ActivityStreams] = None
    ) -> "ActivityWithStreams":
        return cls(**activity.model_dump(), streams=streams)


class ActivitySummary(BaseModel):
    id: int
    name: str
    start_date: str
    distance: float
    moving_time: int
    average_watts: Optional[float] = None
    average_heartrate: Optional[float] = None

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivitySummary":
        return cls(
            id=activity.id,
            name=activity.name,
            start_date=activity.start_date,
            distance=activity.distance,
            moving_time=activity.moving_time,
            average_watts=activity.average_watts,
            average_heartrate=activity.average_heartrate,
        )


class ActivityIndex(BaseModel):
    """Sync ledger: one summary per persisted activity, newest first."""

    last_updated: str = ""
    activities: List[ActivitySummary] = Field(default_factory=list)


class PaginationState(str, Enum):
    PAGINATING = "paginating"
    FOUND_EXISTING = "found_existing"
    PAGE_LIMIT_REACHED = "page_limit_reached"
    EMPTY_PAGE = "empty_page"


class PaginationResult(BaseModel):
    state: PaginationState
    candidates: List[Activity] = Field(default_factory=list)
    pages_fetched: int = 0
    activities_fetched: int = 0
    activities_skipped: int = 0


class EnrichmentResult(BaseModel):
    with_streams: int = 0
    without_streams: int = 0
    existing_files: int = 0


class SyncResult(BaseModel):
    state: PaginationState
    pages_fetched: int = 0
    activities_fetched: int = 0
    candidates: int = 0
    with_streams: int = 0
    without_streams: int = 0
    existing_files: int = 0
    total_activities: int = 0
    last_updated: str = ""


class DistancePoint(BaseModel):
    start_date: str
    distance_km: float


class PowerBin(BaseModel):
    lower: float
    upper: float
    count: int


class ActivityStats(BaseModel):
    total_activities: int = 0
    total_distance_km: float = 0.0
    total_hours: float = 0.0
    average_power: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_speed_kmh: float = 0.0
    distance_series: List[DistancePoint] = Field(default_factory=list)
    power_histogram: List[PowerBin] = Field(default_factory=list)
