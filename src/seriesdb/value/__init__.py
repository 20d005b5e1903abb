"""
Value

This package turns observation rows into typed output values.
"""

from seriesdb.value.assembler import ValueAssembler, assembler_for
from seriesdb.value.models import (
    Data,
    DatasetMetadata,
    OutputValue,
    ReferenceValueOutput,
    ValidTime,
)

__all__ = [
    "Data",
    "DatasetMetadata",
    "OutputValue",
    "ReferenceValueOutput",
    "ValidTime",
    "ValueAssembler",
    "assembler_for",
]
