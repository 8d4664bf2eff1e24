"""HTTP layer for the tutor service."""
