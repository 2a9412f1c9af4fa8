"""Common module — shared utilities for the HR dashboard."""
