import logging
from typing import Any, List

import psycopg

from seriesdb.dataset import DatasetRepository
from seriesdb.models import Dataset, Observation
from seriesdb.nodata import NoDataPolicies, NoDataPolicy
from seriesdb.query import Query
from seriesdb.series.reader import ReadValue, SeriesReader
from seriesdb.value import Data, assembler_for

logger = logging.getLogger(__name__)


def reference_id(reference: Dataset) -> str:
    """References are always keyed by their numeric id, never the domain id."""
    return str(reference.id)


class ReferenceSeriesExpander:
    """
    Assembles the reference series of a primary dataset so that each one
    spans the requested interval, even when its data is sparse.
    """

    def __init__(self, datasets: DatasetRepository = None, reader: SeriesReader = None):
        self.datasets = datasets or DatasetRepository()
        self.reader = reader or SeriesReader()

    def expand(
        self,
        conn: psycopg.Connection,
        dataset: Dataset,
        query: Query,
        policies: NoDataPolicies,
    ) -> dict[str, Data]:
        """Reference series keyed by reference id. Unpublished references are left out."""
        series = {}
        for reference in self.datasets.get_many(conn, list(dataset.reference_ids)):
            if not reference.is_published or reference.value_type is not dataset.value_type:
                logger.debug("Skipping reference %s of dataset %s", reference.id, dataset.id)
                continue
            policy = policies.resolve(reference)
            read_values = self.reader.read(conn, reference, query, policy)
            data = Data(values=[read.value for read in read_values])
            if len(read_values) <= 1:
                data = self.expand_to_interval(conn, reference, query, policy, read_values, data)
            series[reference_id(reference)] = data
        return series

    def expand_to_interval(
        self,
        conn: psycopg.Connection,
        reference: Dataset,
        query: Query,
        policy: NoDataPolicy,
        read_values: List[ReadValue],
        data: Data,
    ) -> Data:
        """
        Extend a sparse series flat across the query interval: a single point
        keeps its own raw value, an empty series takes the raw last value.
        """
        if query.timespan is None or len(read_values) > 1:
            return data
        if read_values:
            source = read_values[0]
        else:
            source = self.reader.read_last(conn, reference, query, policy)
            if source is None:
                return data
        return self._boundary_points(reference, query, source.observation.value)

    def _boundary_points(self, reference: Dataset, query: Query, raw_value: Any) -> Data:
        # the raw value already passed the no-data check, so it is not checked again
        assembler = assembler_for(reference.value_type)
        expanded = Data()
        for timestamp in (query.timespan.start, query.timespan.end):
            observation = Observation.synthetic(timestamp, raw_value)
            value = assembler.create_value(observation, reference, query)
            expanded.add_value(assembler.add_metadata(observation, value, reference, query))
        return expanded
