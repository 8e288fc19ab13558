"""
Practitioner worklist read model.
"""

from .projector import WorklistProjector

__all__ = [
    "WorklistProjector",
]
