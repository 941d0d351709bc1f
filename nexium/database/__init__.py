"""Persistence layer: ORM rows."""
