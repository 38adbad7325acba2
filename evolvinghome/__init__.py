"""
EvolvingHome - home energy score, building footprint and rooftop solar estimates.

Pipeline: postcode → coordinate → building footprint → roof capacity → solar
potential. The score engine runs independently of the pipeline.
"""

from .core.errors import ErrorKind, Outcome
from .core.models import Coordinate, HomeRecord, ImprovementCategory, PropertyType
from .operations import Operations
from .scoring.engine import compute_score
from .scoring.service import HomeScoreService

__version__ = "1.0.0"

__all__ = [
    "ErrorKind",
    "Outcome",
    "Coordinate",
    "HomeRecord",
    "ImprovementCategory",
    "PropertyType",
    "Operations",
    "compute_score",
    "HomeScoreService",
]
