"""HTTP layer for the workflow engine."""
