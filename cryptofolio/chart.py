"""Charting entry points: series synthesis, stacking and hover lookups."""

from .query import hover_detail, resolve_at
from .series import DEFAULT_STEPS, synthesize, synthesize_window
from .stacking import build_stack
from .timewindow import resolve

__all__ = [
    "DEFAULT_STEPS",
    "build_stack",
    "hover_detail",
    "resolve",
    "resolve_at",
    "synthesize",
    "synthesize_window",
]
