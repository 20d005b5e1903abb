import logging
from typing import List, NamedTuple, Optional

import psycopg

from seriesdb.models import Column, Dataset, Observation
from seriesdb.nodata import NoDataPolicy
from seriesdb.observation import ObservationRepository
from seriesdb.query import Query
from seriesdb.value import Data, OutputValue, assembler_for

logger = logging.getLogger(__name__)


class ReadValue(NamedTuple):
    """An assembled value together with the row it was built from."""

    observation: Observation
    value: OutputValue


class SeriesReader:
    """
    Reads a dataset's observations through the store and assembles them.
    Shared by the series service and the reference expander.
    """

    def __init__(self, observations: ObservationRepository = None):
        self.observations = observations or ObservationRepository()

    def read(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query, policy: NoDataPolicy
    ) -> List[ReadValue]:
        """Assembled values within the query paired with their rows; no-data rows are dropped."""
        assembler = assembler_for(dataset.value_type)
        read_values = []
        for observation in self.observations.find_all(conn, dataset, query):
            value = assembler.assemble(observation, dataset, query, policy)
            if value is not None:
                read_values.append(ReadValue(observation, value))
        return read_values

    def assemble(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query, policy: NoDataPolicy
    ) -> Data:
        """All values of a dataset within the query, in store order."""
        return Data(values=[read.value for read in self.read(conn, dataset, query, policy)])

    def first_value(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query, policy: NoDataPolicy
    ) -> Optional[OutputValue]:
        if dataset.first_value_at is None:
            return None
        observation = self.observations.find_at(
            conn, dataset, dataset.first_value_at, Column.SAMPLING_TIME_START, query
        )
        read = self._complete(observation, dataset, query, policy, "first")
        return read.value if read else None

    def last_value(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query, policy: NoDataPolicy
    ) -> Optional[OutputValue]:
        read = self.read_last(conn, dataset, query, policy)
        return read.value if read else None

    def read_last(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query, policy: NoDataPolicy
    ) -> Optional[ReadValue]:
        """The last value of a dataset with the row behind it."""
        if dataset.last_value_at is None:
            return None
        observation = self.observations.find_at(
            conn, dataset, dataset.last_value_at, Column.SAMPLING_TIME_END, query
        )
        return self._complete(observation, dataset, query, policy, "last")

    def _complete(self, observation, dataset, query, policy, which) -> Optional[ReadValue]:
        if observation is None:
            return None
        value = assembler_for(dataset.value_type).assemble(observation, dataset, query, policy)
        if value is None:
            return None
        if value.timestamp is None or value.value is None:
            # the denormalized pointer references an incomplete row
            logger.warning(
                "Ignoring incomplete %s value of dataset %s (observation %s)",
                which,
                dataset.id,
                observation.id,
            )
            return None
        return ReadValue(observation, value)
