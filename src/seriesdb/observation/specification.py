"""
Predicates over observations (alias ``o``) joined to their dataset (alias ``d``).

Each rule yields a Predicate: an SQL fragment with %s placeholders and the
parameters for them, in order. Predicates are ANDed with ``and_()``.
"""

from datetime import datetime
from typing import NamedTuple, Optional

from seriesdb.errors import InvalidQueryError
from seriesdb.models import Column, Dataset
from seriesdb.query import Query

STORAGE_SRID = 4326


class Predicate(NamedTuple):
    sql: str
    params: tuple = ()


def and_(*predicates: Optional[Predicate]) -> Predicate:
    """AND all given predicates, skipping None."""
    present = [p for p in predicates if p is not None]
    if not present:
        return Predicate("TRUE")
    sql = " AND ".join(f"({p.sql})" for p in present)
    params = tuple(param for p in present for param in p.params)
    return Predicate(sql, params)


def _column(column) -> Column:
    try:
        return Column(column)
    except ValueError:
        raise InvalidQueryError(f"Unsupported timestamp column: {column!r}") from None


class ObservationSpecification:
    """Builds the filter predicates a query implies."""

    def __init__(self, query: Query):
        self.query = query

    @classmethod
    def of(cls, query: Query) -> "ObservationSpecification":
        return cls(query)

    # Single rules

    def dataset_visible(self) -> Predicate:
        return Predicate(
            "d.is_published AND NOT d.is_deleted"
            " AND d.first_value_at IS NOT NULL AND d.last_value_at IS NOT NULL"
        )

    def for_dataset(self, dataset: Dataset) -> Predicate:
        return Predicate("o.dataset_id = %s", (dataset.id,))

    def not_deleted(self) -> Predicate:
        return Predicate("NOT o.is_deleted")

    def parent(self) -> Predicate:
        return Predicate("o.is_parent = %s", (self.query.complex_parent,))

    def timespan(self) -> Optional[Predicate]:
        timespan = self.query.timespan
        if timespan is None:
            return None
        return Predicate("o.sampling_time_end BETWEEN %s AND %s", (timespan.start, timespan.end))

    def spatial(self) -> Optional[Predicate]:
        bbox = self.query.bbox
        if bbox is None:
            return None
        return Predicate(
            "ST_Intersects(COALESCE(o.geom, d.geom),"
            f" ST_Transform(ST_MakeEnvelope(%s, %s, %s, %s, %s), {STORAGE_SRID}))",
            (bbox.min_x, bbox.min_y, bbox.max_x, bbox.max_y, bbox.srid),
        )

    def result_time(self, column: Column = Column.SAMPLING_TIME_END) -> Optional[Predicate]:
        """
        No result time given: keep the latest version per timestamp and dataset.
        Explicit result time: exact match. All result times: no filter.
        """
        if self.query.all_result_times:
            return None
        if self.query.result_time is not None:
            return Predicate("o.result_time = %s", (self.query.result_time,))
        col = _column(column).value
        # missing result times rank lowest but still survive on their own
        return Predicate(
            f"(o.{col}, COALESCE(o.result_time, '-infinity'::timestamptz)) IN ("
            f" SELECT rt.{col}, MAX(COALESCE(rt.result_time, '-infinity'::timestamptz))"
            " FROM observations rt"
            " WHERE rt.dataset_id = o.dataset_id AND NOT rt.is_deleted"
            f" GROUP BY rt.{col})"
        )

    # Combined filters

    def default_filters(
        self, dataset: Dataset, column: Column = Column.SAMPLING_TIME_END
    ) -> Predicate:
        """Every rule except the time filter."""
        return and_(
            self.dataset_visible(),
            self.for_dataset(dataset),
            self.not_deleted(),
            self.spatial(),
            self.result_time(column),
            self.parent(),
        )

    def match_filters(self, dataset: Dataset) -> Predicate:
        return and_(self.default_filters(dataset), self.timespan())

    def match_at(self, dataset: Dataset, timestamp: datetime, column: Column) -> Predicate:
        col = _column(column)
        return and_(
            self.default_filters(dataset, col),
            Predicate(f"o.{col.value} = %s", (timestamp,)),
        )

    def match_before_start(self, dataset: Dataset) -> Optional[Predicate]:
        if self.query.timespan is None:
            return None
        return and_(
            self.default_filters(dataset),
            Predicate("o.sampling_time_end < %s", (self.query.timespan.start,)),
        )

    def match_after_end(self, dataset: Dataset) -> Optional[Predicate]:
        if self.query.timespan is None:
            return None
        return and_(
            self.default_filters(dataset),
            Predicate("o.sampling_time_start > %s", (self.query.timespan.end,)),
        )
