# deploywatch utilities
"""Backoff, locking, logging and job decorators for deploywatch."""

from .backoff import BackoffController
from .decorators import guard_job
from .locks import ReadWriteLock
from .logging_config import setup_logging

__all__ = ["BackoffController", "guard_job", "ReadWriteLock", "setup_logging"]
