"""Serialization of feature records."""

from vocaltract.io.exporter import FeatureExporter

__all__ = ["FeatureExporter"]
