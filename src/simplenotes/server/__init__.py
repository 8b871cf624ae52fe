"""HTTP server for simplenotes."""
