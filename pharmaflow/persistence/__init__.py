"""Persistence layer for pharmaflow workflows."""

from __future__ import annotations

from typing import Optional

from ..config import PharmaflowConfig, load_config
from .inmemory import InMemoryWorkflowRepository
from .repository import Mutation, WorkflowRepository
from .sqlite import SQLiteWorkflowRepository

_repository_instance: WorkflowRepository | None = None


def open_repository(database_url: Optional[str]) -> WorkflowRepository:
    """Open the store named by ``database_url``; in-memory when it is empty.

    Only ``sqlite://<path>`` URLs are supported.
    """
    if not database_url:
        return InMemoryWorkflowRepository()
    scheme, sep, location = database_url.partition("://")
    if scheme != "sqlite" or not sep or not location:
        raise ValueError(f"Unsupported database backend: {database_url}")
    return SQLiteWorkflowRepository(location)


def get_repository(
    database_url: Optional[str] = None, config: Optional[PharmaflowConfig] = None
) -> WorkflowRepository:
    """Return the process-wide workflow repository.

    The first call, or any call naming a ``database_url`` or ``config``,
    opens a new store and makes it the shared one. Without an explicit URL
    the configured ``database_url`` is used; :func:`load_config` already
    folds in ``PHARMAFLOW_DATABASE_URL`` / ``DATABASE_URL``.
    """
    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    if database_url is None:
        database_url = (config or load_config()).database_url
    _repository_instance = open_repository(database_url)
    return _repository_instance


__all__ = [
    "Mutation",
    "WorkflowRepository",
    "SQLiteWorkflowRepository",
    "InMemoryWorkflowRepository",
    "get_repository",
    "open_repository",
]
