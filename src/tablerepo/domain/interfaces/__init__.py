"""Behavior contracts consumed by the event pipeline."""

from .behavior import Behavior, Filtering

__all__ = ["Behavior", "Filtering"]
