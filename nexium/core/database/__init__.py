"""
Database infrastructure.

Import `DatabaseService` from `nexium.core.database.service`; this package
only re-exports the declarative base so row modules avoid a cycle.
"""

from nexium.core.database.base import Base, UTCDateTime, utc_now

__all__ = ["Base", "UTCDateTime", "utc_now"]
