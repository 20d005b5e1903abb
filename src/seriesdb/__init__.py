"""
seriesdb

Data-access layer for a time-series observation store.
"""

__version__ = "0.1.0"
