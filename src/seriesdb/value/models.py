"""
Caller-facing output records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import pandas as pd
from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True)
class ValidTime:
    start: Optional[datetime]
    end: Optional[datetime]


@dataclass
class OutputValue:
    timestamp: Optional[datetime]
    value: Any
    timestart: Optional[datetime] = None
    result_time: Optional[datetime] = None
    valid_time: Optional[ValidTime] = None
    geometry: Optional[BaseGeometry] = None
    parameters: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Only the attributes that were attached."""
        out = {}
        if self.timestart is not None:
            out["timestart"] = self.timestart.isoformat()
            out["timeend"] = self.timestamp.isoformat() if self.timestamp else None
        else:
            out["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        out["value"] = self.value
        if self.result_time is not None:
            out["resultTime"] = self.result_time.isoformat()
        if self.valid_time is not None:
            out["validTime"] = {
                "start": self.valid_time.start.isoformat() if self.valid_time.start else None,
                "end": self.valid_time.end.isoformat() if self.valid_time.end else None,
            }
        if self.geometry is not None:
            out["geometry"] = self.geometry.wkt
        if self.parameters:
            out["parameters"] = list(self.parameters)
        return out


@dataclass
class DatasetMetadata:
    value_before_timespan: Optional[OutputValue] = None
    value_after_timespan: Optional[OutputValue] = None
    reference_values: dict[str, "Data"] = field(default_factory=dict)


@dataclass
class Data:
    values: list[OutputValue] = field(default_factory=list)
    metadata: Optional[DatasetMetadata] = None

    def add_value(self, value: Optional[OutputValue]) -> "Data":
        """Append a value; absent values are dropped."""
        if value is not None:
            self.values.append(value)
        return self

    def __len__(self) -> int:
        return len(self.values)

    def to_frame(self) -> pd.DataFrame:
        """Values as a DataFrame with timestamp, timestart, value and result_time columns."""
        columns = ["timestamp", "timestart", "value", "result_time"]
        rows = [
            {
                "timestamp": v.timestamp,
                "timestart": v.timestart,
                "value": v.value,
                "result_time": v.result_time,
            }
            for v in self.values
        ]
        return pd.DataFrame(rows, columns=columns)


@dataclass
class ReferenceValueOutput:
    reference_value_id: str
    label: Optional[str]
    last_value: Optional[OutputValue]
