"""Hatchr Radar: new-token discovery, enrichment, reputation scoring and alerts."""

__version__ = "0.1.0"
