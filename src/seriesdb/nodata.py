"""
No-data sentinel policies.

A service declares raw values that mean "no measurement" (e.g. -9999.0).
Policies are read once at startup and handed to the series service; a dataset
resolves to its own service's policy or the process-wide default.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

import psycopg

from seriesdb import db
from seriesdb.errors import ConfigurationError
from seriesdb.models import Dataset

logger = logging.getLogger(__name__)


def _as_decimal(value: Any) -> Optional[Decimal]:
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return None


@dataclass(frozen=True)
class NoDataPolicy:
    values: frozenset[str] = frozenset()

    @classmethod
    def of(cls, values: Iterable[str]) -> "NoDataPolicy":
        return cls(frozenset(str(v).strip() for v in values))

    def is_no_data_value(self, raw: Any) -> bool:
        """Numeric payloads compare as decimals, text by equality; booleans never match."""
        if raw is None or isinstance(raw, bool):
            return False
        if isinstance(raw, (int, float, Decimal)):
            sentinels = {_as_decimal(v) for v in self.values} - {None}
            return _as_decimal(raw) in sentinels
        if isinstance(raw, str):
            return raw in self.values
        return False


@dataclass(frozen=True)
class NoDataPolicies:
    default: Optional[NoDataPolicy] = None
    by_service: Mapping[int, NoDataPolicy] = field(default_factory=dict)

    @classmethod
    def load(
        cls, conn: psycopg.Connection, default_values: Optional[Iterable[str]] = None
    ) -> "NoDataPolicies":
        """Read every service's sentinels; default_values=None means no default service."""
        rows = db.fetch_all(conn, "SELECT id, no_data_values FROM services ORDER BY id")
        by_service = {row["id"]: NoDataPolicy.of(row["no_data_values"] or ()) for row in rows}
        default = NoDataPolicy.of(default_values) if default_values is not None else None
        logger.info(
            "Loaded no-data policies for %d services (default: %s)",
            len(by_service),
            "yes" if default else "no",
        )
        return cls(default=default, by_service=by_service)

    def resolve(self, dataset: Dataset) -> NoDataPolicy:
        if dataset.service_id is not None and dataset.service_id in self.by_service:
            return self.by_service[dataset.service_id]
        if self.default is not None:
            return self.default
        raise ConfigurationError(f"No service instance available for dataset {dataset.id}")
