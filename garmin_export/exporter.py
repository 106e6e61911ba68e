"""Download activities and write them to disk, one file per activity."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config import EXPORT_FILE_EXTENSION
from .errors import ExportIOError
from .garmin_client import ActivityClient
from .models import Activity

LOGGER = logging.getLogger(__name__)


@dataclass
class ExportSummary:
    written: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.written) + len(self.skipped)


def activity_path(directory: Path, activity: Activity, extension: str) -> Path:
    return directory / f"{activity.id}.{extension.lstrip('.')}"


def write_activity_file(
    path: Path, content: bytes, file_time: Optional[float] = None
) -> None:
    """Write ``content`` verbatim, optionally stamping the file time."""

    try:
        path.write_bytes(content)
        if file_time is not None:
            os.utime(path, (file_time, file_time))
    except OSError as exc:
        raise ExportIOError(f"Failed to write {path}: {exc}") from exc


def export_activities(
    client: ActivityClient,
    directory: str | os.PathLike[str],
    *,
    count: Optional[int] = None,
    extension: str = EXPORT_FILE_EXTENSION,
    skip_existing: bool = True,
    original_time: bool = False,
) -> ExportSummary:
    """Download up to ``count`` activities (all when None) into ``directory``.

    The batch stops at the first failure; files already written stay on disk.
    """

    target = Path(directory)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ExportIOError(f"Cannot create directory {target}: {exc}") from exc

    summary = ExportSummary()
    for index, activity in enumerate(client.iter_activities(count), start=1):
        path = activity_path(target, activity, extension)
        if skip_existing and path.exists():
            LOGGER.info("Activity %s already downloaded, skipping", activity.id)
            summary.skipped.append(path)
            continue
        LOGGER.info(
            "Downloading activity %s (#%d) %s", activity.id, index, activity.name
        )
        content = client.download_activity(activity.id)
        file_time = None
        if original_time and activity.start_time_gmt is not None:
            file_time = activity.start_time_gmt.timestamp()
        write_activity_file(path, content, file_time)
        summary.written.append(path)

    LOGGER.info(
        "Export finished: %d written, %d skipped",
        len(summary.written),
        len(summary.skipped),
    )
    return summary
