"""Live draft engine services."""
