"""Reporting utilities for sgdnet."""

from .artifacts import write_manifest
from .metrics import CsvSink, JsonlSink
from .plots import PlotAdapter

__all__ = ["write_manifest", "CsvSink", "JsonlSink", "PlotAdapter"]
