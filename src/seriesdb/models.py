"""
Store records: datasets and the observations they own.

Both are read-only snapshots of a row, fetched per request.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from shapely import wkt
from shapely.geometry.base import BaseGeometry


class ValueType(str, Enum):
    QUANTITY = "quantity"
    COUNT = "count"
    TEXT = "text"
    BOOLEAN = "boolean"
    CATEGORY = "category"
    COMPLEX = "complex"
    NOT_INITIALIZED = "not_initialized"

    @property
    def value_column(self) -> str:
        """Observation column holding the payload for this type."""
        return f"value_{self.value}"

    @classmethod
    def extract_id(cls, dataset_id: str) -> str:
        """
        Strip a value type prefix from a dataset id.

        "quantity_12" -> "12", "12" -> "12", "ph_sensor" -> "ph_sensor"
        """
        prefix, sep, rest = dataset_id.partition("_")
        if sep and rest and prefix in {t.value for t in cls}:
            return rest
        return dataset_id


class Column(str, Enum):
    """Timestamp columns an instant can be matched against."""

    SAMPLING_TIME_START = "sampling_time_start"
    SAMPLING_TIME_END = "sampling_time_end"


@dataclass(frozen=True)
class Dataset:
    id: int
    identifier: Optional[str]
    value_type: ValueType
    is_published: bool = True
    is_deleted: bool = False
    first_value_at: Optional[datetime] = None
    last_value_at: Optional[datetime] = None
    is_mobile: bool = False
    procedure_id: Optional[int] = None
    service_id: Optional[int] = None
    number_of_decimals: Optional[int] = None
    reference_ids: tuple[int, ...] = ()

    @classmethod
    def from_row(cls, row: dict) -> "Dataset":
        return cls(
            id=row["id"],
            identifier=row.get("identifier"),
            value_type=ValueType(row["value_type"]),
            is_published=row["is_published"],
            is_deleted=row["is_deleted"],
            first_value_at=row.get("first_value_at"),
            last_value_at=row.get("last_value_at"),
            is_mobile=bool(row.get("is_mobile")),
            procedure_id=row.get("procedure_id"),
            service_id=row.get("service_id"),
            number_of_decimals=row.get("number_of_decimals"),
            reference_ids=tuple(row.get("reference_ids") or ()),
        )


@dataclass(frozen=True)
class Observation:
    id: Optional[int]
    dataset_id: Optional[int]
    sampling_time_start: Optional[datetime]
    sampling_time_end: Optional[datetime]
    value: Any = None
    result_time: Optional[datetime] = None
    valid_time_start: Optional[datetime] = None
    valid_time_end: Optional[datetime] = None
    geometry: Optional[BaseGeometry] = None
    is_parent: bool = False
    is_deleted: bool = False
    parameters: list[dict] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict, value_type: ValueType) -> "Observation":
        """Map an observation row, picking the payload column of the value type."""
        geometry = row.get("geometry")
        return cls(
            id=row["id"],
            dataset_id=row["dataset_id"],
            sampling_time_start=row["sampling_time_start"],
            sampling_time_end=row["sampling_time_end"],
            value=row.get(value_type.value_column),
            result_time=row.get("result_time"),
            valid_time_start=row.get("valid_time_start"),
            valid_time_end=row.get("valid_time_end"),
            geometry=wkt.loads(geometry) if geometry else None,
            is_parent=row.get("is_parent", False),
            is_deleted=row.get("is_deleted", False),
            parameters=list(row.get("parameters") or []),
        )

    @classmethod
    def synthetic(cls, timestamp: datetime, value: Any) -> "Observation":
        """An unsaved observation pinned to one instant, used for boundary points."""
        return cls(
            id=None,
            dataset_id=None,
            sampling_time_start=timestamp,
            sampling_time_end=timestamp,
            value=value,
        )
