"""Infrastructure layer: configuration, logging, events, database, locking."""
