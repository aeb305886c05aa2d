"""Database bootstrapping utilities."""

from __future__ import annotations

from app.packages.drive.core.logger import logger
from app.packages.drive.db import session as db_session
from app.packages.drive.models.base import Base
from app.packages.drive.models.file_node import FileNode  # noqa: F401 - ensure table creation in tests
from app.packages.drive.models.object_deletion import ObjectDeletion  # noqa: F401 - ensure table creation in tests


def init_db() -> None:
    """Create all database tables if they do not exist."""
    try:
        Base.metadata.create_all(bind=db_session.engine)
    except Exception:  # pragma: no cover - initialization failures should surface
        logger.exception("Failed to create tables during database initialization")
        raise
