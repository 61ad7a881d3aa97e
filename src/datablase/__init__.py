"""Datablase: ingestion and temporal-merge engine for simulation feeds."""

__version__ = "0.1.0"
