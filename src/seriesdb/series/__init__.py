"""
Series

This package assembles the value sequences callers ask for, including the
expanded view with boundary values and reference series.
"""

from seriesdb.series.boundary import BoundaryResolver
from seriesdb.series.reader import SeriesReader
from seriesdb.series.reference import ReferenceSeriesExpander
from seriesdb.series.service import SeriesService

__all__ = ["BoundaryResolver", "ReferenceSeriesExpander", "SeriesReader", "SeriesService"]
