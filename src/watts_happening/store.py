import contextlib
import logging
import os
from pathlib import Path
from typing import Iterator, Set, Union

from pydantic import ValidationError

from watts_happening.errors import FilesystemError
from watts_happening.models import (
    Activity,
    ActivityIndex,
    ActivitySummary,
    ActivityWithStreams,
)

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"
ACTIVITIES_DIRNAME = "activities"


def _write_text(path: Path, content: str) -> None:
    """Write to a sibling temp file, then rename it over ``path``."""
    tmp_path = path.with_name(f"{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        raise FilesystemError(f"Could not write {path}: {e}") from e


class ActivityIndexStore:
    """Owns the in-memory activity index for one run and persists it as JSON."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.index = ActivityIndex()

    @property
    def path(self) -> Path:
        return self.data_dir / INDEX_FILENAME

    def load(self) -> ActivityIndex:
        """Load the persisted index.

        A missing or unparseable file is not an error: the first run has no
        prior state, so an empty index is used instead.

        Returns:
            The loaded (or empty) index, which the store now owns.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"No index at {self.path}, starting with an empty index")
            self.index = ActivityIndex()
            return self.index
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {self.path}, starting with an empty index: {e}")
            self.index = ActivityIndex()
            return self.index

        try:
            self.index = ActivityIndex.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Could not parse {self.path}, starting with an empty index: {e}")
            self.index = ActivityIndex()
        return self.index

    def known_ids(self) -> Set[int]:
        return {summary.id for summary in self.index.activities}

    def add_activity(self, activity: Activity) -> None:
        # ISO-8601 strings sort lexicographically in chronological order.
        self.index.activities.insert(0, ActivitySummary.from_activity(activity))
        self.index.activities.sort(key=lambda summary: summary.start_date, reverse=True)

    def save(self) -> None:
        """Write the index to ``<data_dir>/index.json``.

        Raises:
            FilesystemError: If the directory or file cannot be written.
        """
        _write_text(self.path, self.index.model_dump_json(indent=2))
        logger.debug(f"Saved {len(self.index.activities)} activities to {self.path}")


class ActivityFileStore:
    """One JSON file per activity under ``<data_dir>/activities``."""

    def __init__(self, data_dir: Union[str, Path]):
        self.directory = Path(data_dir) / ACTIVITIES_DIRNAME

    def path_for(self, activity_id: int) -> Path:
        return self.directory / f"{activity_id}.json"

    def exists(self, activity_id: int) -> bool:
        return self.path_for(activity_id).exists()

    def save(self, record: ActivityWithStreams) -> Path:
        path = self.path_for(record.id)
        _write_text(path, record.model_dump_json(by_alias=True, indent=2))
        return path

    def load(self, activity_id: int) -> ActivityWithStreams:
        return ActivityWithStreams.model_validate_json(
            self.path_for(activity_id).read_text(encoding="utf-8")
        )

    def iter_records(self) -> Iterator[ActivityWithStreams]:
        if not self.directory.exists():
            return
        for path in sorted(self.directory.glob("*.json")):
            try:
                yield ActivityWithStreams.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, ValidationError) as e:
                logger.warning(f"Skipping unreadable activity file {path}: {e}")
