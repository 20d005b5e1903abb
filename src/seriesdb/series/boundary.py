from typing import Optional

import psycopg

from seriesdb.models import Dataset, Observation
from seriesdb.observation import ObservationRepository
from seriesdb.query import Query


class BoundaryResolver:
    """
    Finds the observations just outside the requested interval, used for
    expanded views to draw connecting lines at the chart edges. No earlier
    or later data is a normal outcome and yields None.
    """

    def __init__(self, observations: ObservationRepository = None):
        self.observations = observations or ObservationRepository()

    def closest_before_start(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query
    ) -> Optional[Observation]:
        if query.timespan is None:
            return None
        return self.observations.find_closest_before(conn, dataset, query)

    def closest_after_end(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query
    ) -> Optional[Observation]:
        if query.timespan is None:
            return None
        return self.observations.find_closest_after(conn, dataset, query)
