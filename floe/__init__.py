"""Floe Markets — NVDA-collateral lending client and price feeder."""

__version__ = "0.1.0"
