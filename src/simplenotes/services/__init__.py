"""Service layer for simplenotes."""
