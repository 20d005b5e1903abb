"""
Query parameters for observation retrieval.

A Query is immutable and request-scoped. Build it directly or parse it from
request-style string parameters with Query.from_params().
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from seriesdb.errors import InvalidQueryError

DEFAULT_SRID = 4326
DEFAULT_LOCALE = "en"

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no", ""}


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidQueryError(f"Interval start {self.start} is after end {self.end}")

    @classmethod
    def parse(cls, value: str) -> "Interval":
        """Parse an ISO 8601 "<start>/<end>" interval."""
        try:
            start, end = value.split("/")
        except ValueError:
            raise InvalidQueryError(f"Invalid timespan: {value!r}") from None
        return cls(parse_instant(start), parse_instant(end))


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    srid: int = DEFAULT_SRID

    def __post_init__(self):
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise InvalidQueryError(f"Invalid bounding box: {self}")

    @classmethod
    def parse(cls, value: str, srid: int = DEFAULT_SRID) -> "BoundingBox":
        """Parse "minx,miny,maxx,maxy"."""
        parts = value.split(",")
        if len(parts) != 4:
            raise InvalidQueryError(f"Invalid bbox: {value!r}")
        try:
            min_x, min_y, max_x, max_y = (float(p) for p in parts)
        except ValueError:
            raise InvalidQueryError(f"Invalid bbox: {value!r}") from None
        return cls(min_x, min_y, max_x, max_y, srid)


def parse_instant(value: str) -> datetime:
    """Parse an ISO 8601 instant; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        instant = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidQueryError(f"Invalid instant: {value!r}") from None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def _parse_bool(params: Mapping[str, Any], key: str) -> bool:
    raw = params.get(key, False)
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise InvalidQueryError(f"Invalid boolean for {key}: {raw!r}")


@dataclass(frozen=True)
class Query:
    timespan: Optional[Interval] = None
    bbox: Optional[BoundingBox] = None
    result_time: Optional[datetime] = None
    all_result_times: bool = False
    expanded: bool = False
    show_time_intervals: bool = False
    locale: str = DEFAULT_LOCALE
    match_domain_ids: bool = False
    complex_parent: bool = False

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "Query":
        """
        Build a query from request parameters.

        Recognized keys: timespan, bbox, crs, resultTime, allResultTimes,
        expanded, showTimeIntervals, locale, matchDomainIds, complexParent.
        Unknown keys are ignored.
        """
        timespan = params.get("timespan")
        bbox = params.get("bbox")
        result_time = params.get("resultTime")
        try:
            srid = int(params.get("crs", DEFAULT_SRID))
        except (TypeError, ValueError):
            raise InvalidQueryError(f"Invalid crs: {params.get('crs')!r}") from None

        return cls(
            timespan=Interval.parse(timespan) if timespan else None,
            bbox=BoundingBox.parse(bbox, srid) if bbox else None,
            result_time=parse_instant(result_time) if result_time else None,
            all_result_times=_parse_bool(params, "allResultTimes"),
            expanded=_parse_bool(params, "expanded"),
            show_time_intervals=_parse_bool(params, "showTimeIntervals"),
            locale=params.get("locale") or DEFAULT_LOCALE,
            match_domain_ids=_parse_bool(params, "matchDomainIds"),
            complex_parent=_parse_bool(params, "complexParent"),
        )
