"""
Observation

This package provides the query predicates and store access for observation rows.
"""

from seriesdb.observation.repository import ObservationRepository
from seriesdb.observation.specification import ObservationSpecification, Predicate

__all__ = ["ObservationRepository", "ObservationSpecification", "Predicate"]
