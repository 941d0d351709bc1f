"""Process-level dependency container."""
