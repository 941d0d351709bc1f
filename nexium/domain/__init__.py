"""Domain layer: entities, value objects and the error taxonomy. No I/O."""
