from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .errors import DecodeFailedError, InvalidInputError

# Format of the startTimeGMT field in the activity search response.
GMT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def mask_tail(value: str | None, visible: int = 4) -> str:
    """Return ``value`` with everything but the trailing ``visible`` chars hidden."""

    if not value:
        return ""
    tail = value[-visible:] if len(value) > visible else ""
    return f"****{tail}"


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)

    def validate(self) -> None:
        if not self.username or not self.username.strip():
            raise InvalidInputError("Username is missing")
        if not self.password:
            raise InvalidInputError("Password is missing")

    @property
    def masked_username(self) -> str:
        return mask_tail(self.username)


@dataclass(frozen=True, eq=False)
class Activity:
    id: int
    name: str
    description: Optional[str] = None
    start_time_gmt: Optional[datetime] = None

    # Identity is the server-assigned id.
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Activity):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def from_json(cls, record: Mapping[str, Any]) -> "Activity":
        """Build an activity from one activity search record.

        Unknown fields are ignored. ``description`` and ``startTimeGMT`` are
        optional; a missing or invalid ``activityId`` is a decode failure.
        """

        if not isinstance(record, Mapping):
            raise DecodeFailedError(
                f"Activity record must be an object, got {type(record).__name__}"
            )
        raw_id = record.get("activityId")
        if isinstance(raw_id, bool) or not isinstance(raw_id, int) or raw_id < 0:
            raise DecodeFailedError(f"Invalid activityId {raw_id!r}")

        name = record.get("activityName")
        if name is None:
            name = ""
        elif not isinstance(name, str):
            raise DecodeFailedError(
                f"Invalid activityName for activity {raw_id}: {name!r}"
            )

        description = record.get("description")
        if description is not None and not isinstance(description, str):
            raise DecodeFailedError(
                f"Invalid description for activity {raw_id}: {description!r}"
            )

        return cls(
            id=raw_id,
            name=name,
            description=description,
            start_time_gmt=_parse_gmt(record.get("startTimeGMT"), raw_id),
        )


def _parse_gmt(value: Any, activity_id: int) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise DecodeFailedError(
            f"Invalid startTimeGMT for activity {activity_id}: {value!r}"
        )
    try:
        parsed = datetime.strptime(value, GMT_TIME_FORMAT)
    except ValueError as exc:
        raise DecodeFailedError(
            f"Invalid startTimeGMT for activity {activity_id}: {value!r}"
        ) from exc
    return parsed.replace(tzinfo=timezone.utc)
