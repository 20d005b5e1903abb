import logging
from datetime import datetime
from typing import List, Optional

import psycopg
from shapely import wkt
from shapely.geometry.base import BaseGeometry

from seriesdb import db
from seriesdb.models import Column, Dataset, Observation, ValueType
from seriesdb.observation.specification import ObservationSpecification, Predicate
from seriesdb.query import Query

logger = logging.getLogger(__name__)

_PARAMETERS = """
    (SELECT COALESCE(json_agg(json_build_object('name', p.name, 'value', p.value)
                              ORDER BY p.name), '[]'::json)
     FROM observation_parameters p
     WHERE p.observation_id = o.id) AS parameters
"""

_COMPLEX_COMPONENTS = """
    (SELECT COALESCE(json_agg(json_build_object(
                'dataset_id', c.dataset_id,
                'value', COALESCE(c.value_quantity::text, c.value_count::text, c.value_text,
                                  c.value_boolean::text, c.value_category))
              ORDER BY c.dataset_id, c.id), '[]'::json)
     FROM observations c
     WHERE c.parent_id = o.id AND NOT c.is_deleted) AS value_complex
"""


def _select(dataset: Dataset) -> str:
    components = (
        _COMPLEX_COMPONENTS
        if dataset.value_type is ValueType.COMPLEX
        else "NULL::json AS value_complex"
    )
    return f"""
        SELECT o.id, o.dataset_id, o.sampling_time_start, o.sampling_time_end,
               o.result_time, o.valid_time_start, o.valid_time_end,
               ST_AsText(o.geom) AS geometry,
               o.value_quantity, o.value_count, o.value_text, o.value_boolean,
               o.value_category, o.is_parent, o.is_deleted,
               {_PARAMETERS},
               {components}
        FROM observations o
        JOIN datasets d ON d.id = o.dataset_id
    """


class ObservationRepository:
    """
    Repository for observation data access.
    Encapsulates all SQL for the observations and observation_parameters tables.
    Every method runs on the connection passed in by the caller.
    """

    def _find_one(
        self, conn: psycopg.Connection, dataset: Dataset, predicate: Predicate, order_by: str
    ) -> Optional[Observation]:
        row = db.fetch_one(
            conn,
            _select(dataset) + f" WHERE {predicate.sql} ORDER BY {order_by} LIMIT 1",
            predicate.params,
        )
        return Observation.from_row(row, dataset.value_type) if row else None

    def find_all(self, conn: psycopg.Connection, dataset: Dataset, query: Query) -> List[Observation]:
        """All visible observations of a dataset matching the query, ascending by sampling end."""
        logger.debug("get all observations for dataset '%s': %s", dataset.id, query)
        predicate = ObservationSpecification.of(query).match_filters(dataset)
        rows = db.fetch_all(
            conn,
            _select(dataset)
            + f" WHERE {predicate.sql}"
            + " ORDER BY o.sampling_time_end, o.result_time NULLS FIRST, o.id",
            predicate.params,
        )
        return [Observation.from_row(row, dataset.value_type) for row in rows]

    def find_at(
        self,
        conn: psycopg.Connection,
        dataset: Dataset,
        timestamp: datetime,
        column: Column,
        query: Query,
    ) -> Optional[Observation]:
        """The observation whose sampling start or end (per column) equals timestamp."""
        logger.debug("get observation @%s (%s) for dataset '%s'", timestamp, column, dataset.id)
        predicate = ObservationSpecification.of(query).match_at(dataset, timestamp, column)
        return self._find_one(conn, dataset, predicate, "o.result_time DESC NULLS LAST, o.id DESC")

    def find_closest_before(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query
    ) -> Optional[Observation]:
        """The observation with the greatest sampling end before the query start."""
        predicate = ObservationSpecification.of(query).match_before_start(dataset)
        if predicate is None:
            return None
        return self._find_one(
            conn,
            dataset,
            predicate,
            "o.sampling_time_end DESC, o.result_time DESC NULLS LAST, o.id DESC",
        )

    def find_closest_after(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query
    ) -> Optional[Observation]:
        """The observation with the smallest sampling start after the query end."""
        predicate = ObservationSpecification.of(query).match_after_end(dataset)
        if predicate is None:
            return None
        return self._find_one(
            conn,
            dataset,
            predicate,
            "o.sampling_time_start, o.result_time DESC NULLS LAST, o.id",
        )

    def find_geometry_at(
        self, conn: psycopg.Connection, dataset: Dataset, timestamp: datetime, query: Query
    ) -> Optional[BaseGeometry]:
        """Geometry of the observation ending at timestamp, if it carries one."""
        predicate = ObservationSpecification.of(query).match_at(
            dataset, timestamp, Column.SAMPLING_TIME_END
        )
        row = db.fetch_one(
            conn,
            f"""
            SELECT ST_AsText(o.geom) AS geometry
            FROM observations o
            JOIN datasets d ON d.id = o.dataset_id
            WHERE {predicate.sql}
            ORDER BY o.result_time DESC NULLS LAST, o.id DESC
            LIMIT 1
            """,
            predicate.params,
        )
        if not row or not row["geometry"]:
            return None
        return wkt.loads(row["geometry"])
