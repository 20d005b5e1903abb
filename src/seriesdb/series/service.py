import logging
from typing import List, Optional

import psycopg
from shapely.geometry.base import BaseGeometry

from seriesdb import db
from seriesdb.config import config
from seriesdb.dataset import DatasetRepository
from seriesdb.errors import DataAccessError
from seriesdb.models import Dataset
from seriesdb.nodata import NoDataPolicies, NoDataPolicy
from seriesdb.observation import ObservationRepository
from seriesdb.query import Query
from seriesdb.series.boundary import BoundaryResolver
from seriesdb.series.reader import SeriesReader
from seriesdb.series.reference import ReferenceSeriesExpander, reference_id
from seriesdb.value import Data, DatasetMetadata, OutputValue, ReferenceValueOutput, assembler_for

logger = logging.getLogger(__name__)


class SeriesService:
    """
    Entry point for reading series data.

    Every public method works on exactly one connection, acquired on entry
    and released on every exit path.
    """

    def __init__(
        self,
        policies: NoDataPolicies,
        datasets: DatasetRepository = None,
        observations: ObservationRepository = None,
    ):
        self.policies = policies
        self.datasets = datasets or DatasetRepository()
        self.observations = observations or ObservationRepository()
        self.reader = SeriesReader(self.observations)
        self.boundaries = BoundaryResolver(self.observations)
        self.references = ReferenceSeriesExpander(self.datasets, self.reader)

    @classmethod
    def create(cls) -> "SeriesService":
        """Load the no-data policies once and build a service around them."""
        with db.get_connection() as conn:
            policies = NoDataPolicies.load(conn, config.default_no_data_values)
        return cls(policies)

    def get_dataset(self, dataset_id: str, query: Query) -> Dataset:
        with db.get_connection() as conn:
            return self.datasets.get(conn, dataset_id, query)

    def get_data(self, dataset_id: str, query: Query) -> Data:
        """
        The dataset's values within the query, ascending by time. Expanded
        queries also get boundary values and reference series as metadata.
        """
        with db.get_connection() as conn:
            dataset = self.datasets.get(conn, dataset_id, query)
            policy = self.policies.resolve(dataset)
            if query.expanded:
                return self._assemble_expanded(conn, dataset, query, policy)
            return self.reader.assemble(conn, dataset, query, policy)

    def _assemble_expanded(
        self, conn: psycopg.Connection, dataset: Dataset, query: Query, policy: NoDataPolicy
    ) -> Data:
        data = self.reader.assemble(conn, dataset, query, policy)
        assembler = assembler_for(dataset.value_type)
        metadata = DatasetMetadata()

        before = self.boundaries.closest_before_start(conn, dataset, query)
        if before is not None:
            metadata.value_before_timespan = assembler.assemble(before, dataset, query, policy)
        after = self.boundaries.closest_after_end(conn, dataset, query)
        if after is not None:
            metadata.value_after_timespan = assembler.assemble(after, dataset, query, policy)

        if dataset.reference_ids:
            metadata.reference_values = self.references.expand(conn, dataset, query, self.policies)
        data.metadata = metadata
        return data

    def get_first_value(self, dataset: Dataset, query: Query) -> Optional[OutputValue]:
        with db.get_connection() as conn:
            return self.reader.first_value(conn, dataset, query, self.policies.resolve(dataset))

    def get_last_value(self, dataset: Dataset, query: Query) -> Optional[OutputValue]:
        with db.get_connection() as conn:
            return self.reader.last_value(conn, dataset, query, self.policies.resolve(dataset))

    def get_last_value_geometry(self, dataset: Dataset, query: Query) -> Optional[BaseGeometry]:
        if dataset.last_value_at is None:
            return None
        with db.get_connection() as conn:
            return self.observations.find_geometry_at(conn, dataset, dataset.last_value_at, query)

    def get_reference_values(self, dataset: Dataset, query: Query) -> List[ReferenceValueOutput]:
        """Label and last value of each reference of the same value type."""
        outputs = []
        with db.get_connection() as conn:
            for reference in self.datasets.get_many(conn, list(dataset.reference_ids)):
                if reference.value_type is not dataset.value_type:
                    continue
                policy = self.policies.resolve(reference)
                outputs.append(
                    ReferenceValueOutput(
                        reference_value_id=reference_id(reference),
                        label=self.datasets.get_procedure_label(conn, reference, query.locale),
                        last_value=self.reader.last_value(conn, reference, query, policy),
                    )
                )
        return outputs

    def get_result_times(self, dataset_id: str, query: Query) -> List[str]:
        """Distinct result times of a dataset as ISO strings; empty when they cannot be read."""
        try:
            with db.get_connection() as conn:
                dataset = self.datasets.get(conn, dataset_id, query)
                return [t.isoformat() for t in self.datasets.get_result_times(conn, dataset)]
        except DataAccessError as e:
            logger.error("Could not read result times of dataset '%s': %s", dataset_id, e)
            return []
