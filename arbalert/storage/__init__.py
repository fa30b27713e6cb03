"""Storage and database operations for the arbitrage alert bot."""

from .db import Database, StorageError
from .models import UserProfile
from .users import UserSettingsStore

__all__ = [
    'Database',
    'StorageError',
    'UserProfile',
    'UserSettingsStore'
]
