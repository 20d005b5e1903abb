"""
Dataset

This package provides lookup of datasets (logical time series) and their references.
"""

from seriesdb.dataset.repository import DatasetRepository

__all__ = ["DatasetRepository"]
