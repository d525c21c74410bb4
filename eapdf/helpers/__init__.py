"""Small helpers shared across the pipelines."""
