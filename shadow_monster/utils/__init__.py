"""Run context and manifest helpers."""
