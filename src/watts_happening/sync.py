import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Set

from watts_happening.client import StravaClient
from watts_happening.config import Settings, get_settings
from watts_happening.errors import ApiError
from watts_happening.metrics import (
    ACTIVITIES_SYNCED_TOTAL,
    PAGES_FETCHED_TOTAL,
    SYNC_RUNS_TOTAL,
)
from watts_happening.models import (
    Activity,
    ActivityWithStreams,
    EnrichmentResult,
    PaginationResult,
    PaginationState,
    SyncResult,
)
from watts_happening.store import ActivityFileStore, ActivityIndexStore

logger = logging.getLogger(__name__)


class SyncManager:
    """SyncManager incrementally pulls new activities from Strava into local storage.

    A run walks the athlete's activity list newest first, page by page, and
    stops at the first activity already recorded in the index. Activities of
    the target sport type found before that point become candidates; each
    candidate is enriched with its sensor streams, written to its own file and
    registered in the index. The index is saved once at the end of the run.

    Attributes:
        client (StravaClient): API client used for every remote call
        index_store (ActivityIndexStore): owner of the sync ledger
        file_store (ActivityFileStore): per-activity record files
        settings (Settings): sport filter, page size, page cap and delay
    Example:
        ```python
        async with StravaClient(settings) as client:
            manager = SyncManager(client, ActivityIndexStore("data"), ActivityFileStore("data"), settings)
            result = await manager.run(client_id, client_secret, refresh_token)
        ```
    Notes:
        - Early stop assumes the remote listing is strictly newest first and
          the local index has no gaps. Activities hidden behind a gap, or more
          than MAX_PAGES pages behind the newest activity, are not found.
        - A streams failure only degrades that activity to ``streams: null``.
        - Concurrent runs against the same data directory are not supported.
    """

    def __init__(
        self,
        client: StravaClient,
        index_store: ActivityIndexStore,
        file_store: ActivityFileStore,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.index_store = index_store
        self.file_store = file_store
        self.settings = settings or get_settings()

    async def discover_candidates(self, access_token: str, known_ids: Set[int]) -> PaginationResult:
        """Page through the activity list until a stop condition is hit.

        Args:
            access_token (str): Bearer token for the activity list endpoint.
            known_ids (Set[int]): Ids already recorded in the index.

        Returns:
            PaginationResult: The terminal state and the candidates in
            discovery order.

        Raises:
            ApiError: If a page cannot be fetched or decoded.
        """
        target = self.settings.TARGET_SPORT_TYPE
        per_page = self.settings.PER_PAGE
        max_pages = self.settings.MAX_PAGES

        result = PaginationResult(state=PaginationState.PAGINATING)
        candidate_ids: Set[int] = set()
        page = 1

        while result.state == PaginationState.PAGINATING:
            logger.info(f"Fetching page {page} ({per_page} per page)")
            activities = await self.client.fetch_activities_page(access_token, page, per_page)
            result.pages_fetched += 1
            PAGES_FETCHED_TOTAL.inc()

            if not activities:
                logger.info("No more activities found")
                result.state = PaginationState.EMPTY_PAGE
                break

            result.activities_fetched += len(activities)
            for activity in activities:
                if activity.id in known_ids:
                    logger.info(
                        f"Found existing activity {activity.name} (id: {activity.id}), stopping pagination"
                    )
                    result.state = PaginationState.FOUND_EXISTING
                    break
                if activity.id in candidate_ids:
                    # Listing shifted between pages.
                    logger.debug(f"Activity {activity.id} already queued")
                    continue
                if activity.sport_type == target:
                    logger.info(f"New {target} activity: {activity.name} (id: {activity.id})")
                    result.candidates.append(activity)
                    candidate_ids.add(activity.id)
                else:
                    logger.info(f"Skipping activity: {activity.name} ({activity.sport_type})")
                    result.activities_skipped += 1

            if result.state != PaginationState.PAGINATING:
                break
            if page >= max_pages:
                logger.warning(f"Reached page limit ({max_pages}), stopping pagination")
                result.state = PaginationState.PAGE_LIMIT_REACHED
            else:
                page += 1

        return result

    async def enrich(self, access_token: str, candidates: List[Activity]) -> EnrichmentResult:
        """Fetch streams for each candidate, persist it and register it in the index.

        Raises:
            FilesystemError: If an activity file cannot be written.
        """
        result = EnrichmentResult()
        total = len(candidates)

        for position, activity in enumerate(candidates, start=1):
            logger.info(f"[{position}/{total}] {activity.name} (id: {activity.id})")

            if self.file_store.exists(activity.id):
                logger.info(f"File for activity {activity.id} already exists, skipping fetch")
                self.index_store.add_activity(activity)
                result.existing_files += 1
                ACTIVITIES_SYNCED_TOTAL.labels(outcome="existing_file").inc()
                continue

            try:
                streams = await self.client.fetch_activity_streams(access_token, activity.id)
            except ApiError as e:
                logger.warning(f"Could not fetch streams for activity {activity.id}: {e}")
                streams = None
                result.without_streams += 1
                ACTIVITIES_SYNCED_TOTAL.labels(outcome="no_streams").inc()
            else:
                logger.info(f"Activity {activity.id}: {streams.data_points} data points")
                result.with_streams += 1
                ACTIVITIES_SYNCED_TOTAL.labels(outcome="streams").inc()

            self.file_store.save(ActivityWithStreams.from_activity(activity, streams))
            self.index_store.add_activity(activity)

            if position < total:
                await asyncio.sleep(self.settings.REQUEST_DELAY)

        return result

    async def run(self, client_id: str, client_secret: str, refresh_token: str) -> SyncResult:
        """Run one incremental sync end to end.

        Steps:
        1. Load the index and snapshot its known ids.
        2. Exchange the refresh token for an access token.
        3. Discover candidates page by page.
        4. Enrich and persist every candidate.
        5. Stamp ``last_updated`` and save the index.

        Raises:
            AuthError: If the token exchange fails.
            ApiError: If an activity list page fails.
            FilesystemError: If a file cannot be written.
        """
        try:
            index = self.index_store.load()
            known_ids = self.index_store.known_ids()
            logger.info(f"Found {len(index.activities)} existing activities in index")

            logger.info("Refreshing access token")
            access_token = await self.client.refresh_access_token(
                client_id, client_secret, refresh_token
            )

            logger.info("Fetching activities from Strava")
            pagination = await self.discover_candidates(access_token, known_ids)
            logger.info(
                f"Pagination finished ({pagination.state.value}): "
                f"{pagination.activities_fetched} activities fetched, "
                f"{len(pagination.candidates)} new {self.settings.TARGET_SPORT_TYPE} activities to process"
            )

            enrichment = EnrichmentResult()
            if pagination.candidates:
                logger.info("Fetching detailed streams for new activities")
                enrichment = await self.enrich(access_token, pagination.candidates)

            index.last_updated = datetime.now(timezone.utc).isoformat()
            self.index_store.save()
        except Exception:
            SYNC_RUNS_TOTAL.labels(status="failed").inc()
            raise

        SYNC_RUNS_TOTAL.labels(status="completed").inc()
        logger.info(
            f"Saved {len(index.activities)} activities; files in {self.file_store.directory}, "
            f"index at {self.index_store.path}; last updated {index.last_updated}"
        )
        return SyncResult(
            state=pagination.state,
            pages_fetched=pagination.pages_fetched,
            activities_fetched=pagination.activities_fetched,
            candidates=len(pagination.candidates),
            with_streams=enrichment.with_streams,
            without_streams=enrichment.without_streams,
            existing_files=enrichment.existing_files,
            total_activities=len(index.activities),
            last_updated=index.last_updated,
        )
