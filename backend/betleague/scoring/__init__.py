"""Rules turning predictions into points."""

from . import outcome, prediction

__all__ = [
    "outcome",
    "prediction",
]
