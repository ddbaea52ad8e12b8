# services/__init__.py

"""
Модуль сервисов Stark Discipline Hub

Клиент хранилища состояния, анализ истории и сессия трекера.
"""

from .state_store import StateStoreClient, DebouncedWriter, StateStoreError, StoreUnavailableError
from .ai_service import HistoryAnalyst
from .tracker import DisciplineTracker, WeekView

__all__ = [
    'StateStoreClient',
    'DebouncedWriter',
    'StateStoreError',
    'StoreUnavailableError',
    'HistoryAnalyst',
    'DisciplineTracker',
    'WeekView'
]
