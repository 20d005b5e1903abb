"""
Error taxonomy for seriesdb.

Absence (no observation, no boundary value, no reference series) is never an
error: it is returned as ``None`` or an empty collection.
"""


class SeriesDbError(Exception):
    """Base class for all seriesdb errors."""


class DataAccessError(SeriesDbError):
    """The store could not be reached or rejected the statement."""


class InvalidQueryError(DataAccessError):
    """A malformed identifier or structurally invalid query."""


class DatasetNotFoundError(DataAccessError):
    """No dataset exists for the requested identifier."""

    def __init__(self, dataset_id: str):
        super().__init__(f"Dataset {dataset_id} not found")
        self.dataset_id = dataset_id


class ConfigurationError(SeriesDbError):
    """Fatal misconfiguration, e.g. no no-data policy for a dataset."""
