"""
Persistence sinks for fetch results.
"""

from .sinks import PersistenceSink, SinkDispatcher, SinkError
from .page_store import PageFileSink
from .database import DatabaseManager, DatabaseError

__all__ = [
    'PersistenceSink', 'SinkDispatcher', 'SinkError',
    'PageFileSink',
    'DatabaseManager', 'DatabaseError',
]
