"""Data models for simplenotes."""
