import logging
from datetime import datetime
from typing import List, Optional

import psycopg

from seriesdb import db
from seriesdb.errors import DatasetNotFoundError, InvalidQueryError
from seriesdb.models import Dataset, ValueType
from seriesdb.query import Query

logger = logging.getLogger(__name__)

DATASET_SELECT = """
    SELECT d.id, d.identifier, d.value_type, d.is_published, d.is_deleted,
           d.first_value_at, d.last_value_at, d.procedure_id, d.service_id,
           d.number_of_decimals, COALESCE(p.is_mobile, false) AS is_mobile,
           ARRAY(
               SELECT r.reference_dataset_id
               FROM dataset_references r
               WHERE r.dataset_id = d.id
               ORDER BY r.reference_dataset_id
           ) AS reference_ids
    FROM datasets d
    LEFT JOIN platforms p ON p.id = d.platform_id
"""


class DatasetRepository:
    """
    Repository for dataset-related data access.
    Encapsulates all SQL for the datasets, dataset_references and procedures tables.
    """

    def get_by_id(self, conn: psycopg.Connection, dataset_id: int) -> Optional[Dataset]:
        """Get a dataset by its numeric ID."""
        row = db.fetch_one(conn, DATASET_SELECT + " WHERE d.id = %s", (dataset_id,))
        return Dataset.from_row(row) if row else None

    def get_by_identifier(self, conn: psycopg.Connection, identifier: str) -> Optional[Dataset]:
        """Get a dataset by its domain identifier."""
        row = db.fetch_one(conn, DATASET_SELECT + " WHERE d.identifier = %s", (identifier,))
        return Dataset.from_row(row) if row else None

    def get(self, conn: psycopg.Connection, dataset_id: str, query: Query) -> Dataset:
        """
        Look up a dataset the way the query asks for it: by domain identifier
        when match_domain_ids is set, by numeric ID otherwise.
        """
        key = ValueType.extract_id(str(dataset_id))
        logger.debug("get dataset '%s' (match_domain_ids=%s)", key, query.match_domain_ids)
        if query.match_domain_ids:
            dataset = self.get_by_identifier(conn, key)
        else:
            try:
                numeric_id = int(key)
            except ValueError:
                raise InvalidQueryError(f"Malformed dataset id: {dataset_id!r}") from None
            dataset = self.get_by_id(conn, numeric_id)
        if dataset is None:
            raise DatasetNotFoundError(str(dataset_id))
        return dataset

    def get_many(self, conn: psycopg.Connection, dataset_ids: List[int]) -> List[Dataset]:
        """Get datasets by ID, in ID order. Missing IDs are skipped."""
        if not dataset_ids:
            return []
        rows = db.fetch_all(
            conn, DATASET_SELECT + " WHERE d.id = ANY(%s) ORDER BY d.id", (list(dataset_ids),)
        )
        return [Dataset.from_row(row) for row in rows]

    def list_published(self, conn: psycopg.Connection) -> List[Dataset]:
        """List all datasets that pass the base visibility rule."""
        rows = db.fetch_all(
            conn,
            DATASET_SELECT
            + """
            WHERE d.is_published AND NOT d.is_deleted
              AND d.first_value_at IS NOT NULL AND d.last_value_at IS NOT NULL
            ORDER BY d.id
            """,
        )
        return [Dataset.from_row(row) for row in rows]

    def get_procedure_label(
        self, conn: psycopg.Connection, dataset: Dataset, locale: str
    ) -> Optional[str]:
        """Procedure name in the given locale, falling back to the untranslated name."""
        if dataset.procedure_id is None:
            return None
        row = db.fetch_one(
            conn,
            """
            SELECT COALESCE(i.name, p.name) AS label
            FROM procedures p
            LEFT JOIN procedure_i18n i ON i.procedure_id = p.id AND i.locale = %s
            WHERE p.id = %s
            """,
            (locale, dataset.procedure_id),
        )
        return row["label"] if row else None

    def get_result_times(self, conn: psycopg.Connection, dataset: Dataset) -> List[datetime]:
        """Distinct result times of a dataset's visible observations, ascending."""
        rows = db.fetch_all(
            conn,
            """
            SELECT DISTINCT o.result_time
            FROM observations o
            WHERE o.dataset_id = %s
              AND o.result_time IS NOT NULL
              AND NOT o.is_deleted
            ORDER BY o.result_time
            """,
            (dataset.id,),
        )
        return [row["result_time"] for row in rows]

    def init_value_type(
        self, conn: psycopg.Connection, dataset_id: int, value_type: ValueType
    ) -> bool:
        """
        Qualify a not yet initialized dataset with a value type.
        Once set, the value type cannot change: returns False and leaves the row as is.
        """
        if value_type is ValueType.NOT_INITIALIZED:
            raise InvalidQueryError("Cannot qualify a dataset as not initialized")
        updated = db.execute(
            conn,
            "UPDATE datasets SET value_type = %s WHERE id = %s AND value_type = %s",
            (value_type.value, dataset_id, ValueType.NOT_INITIALIZED.value),
        )
        return updated == 1
