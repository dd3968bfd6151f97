"""Evaluation primitives: dynamic values, URL matching and config helpers."""
