"""Aggregation, alerts and terminal reports over tracked time."""
