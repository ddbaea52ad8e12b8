#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stark Discipline Hub v1.2 - Configuration
Централизованная конфигурация с валидацией

Версия: 1.2.0
"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

import pytz


class Environment(Enum):
    """Среды выполнения"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(Enum):
    """Уровни логирования"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class StoreConfig:
    """Конфигурация удалённого хранилища состояния"""
    base_url: str = "http://localhost:3001"
    debounce_seconds: float = 0.8
    request_timeout: int = 10
    load_retries: int = 3
    retry_delay: float = 1.0


@dataclass
class AIConfig:
    """Конфигурация анализа через OpenRouter"""
    api_key: Optional[str] = None
    model: str = "openai/gpt-4o-mini"
    base_url: str = "https://openrouter.ai/api/v1"
    request_timeout: int = 30
    max_tokens: int = 800


@dataclass
class ProgressConfig:
    """Параметры экономики наград и графика"""
    goal: int = 60000
    ideal_daily_step: int = 1000
    chart_days_before: int = 13
    chart_days_after: int = 14
    recent_series_days: int = 14


class DisciplineConfig:
    """Главный класс конфигурации"""

    def __init__(self):
        self.environment = Environment(os.getenv('ENVIRONMENT', 'development'))
        self._load_config()
        self._validate_config()

    def _load_config(self):
        """Загрузка конфигурации из переменных окружения"""

        self.store = StoreConfig(
            base_url=os.getenv('STATE_API_URL', 'http://localhost:3001').rstrip('/'),
            debounce_seconds=float(os.getenv('SAVE_DEBOUNCE_SECONDS', 0.8)),
            request_timeout=int(os.getenv('STORE_TIMEOUT', 10)),
            load_retries=int(os.getenv('STORE_LOAD_RETRIES', 3)),
            retry_delay=float(os.getenv('STORE_RETRY_DELAY', 1.0))
        )

        self.ai = AIConfig(
            api_key=os.getenv('OPENROUTER_API_KEY') or None,
            model=os.getenv('OPENROUTER_MODEL', 'openai/gpt-4o-mini'),
            base_url=os.getenv('OPENROUTER_BASE_URL', 'https://openrouter.ai/api/v1'),
            request_timeout=int(os.getenv('AI_TIMEOUT', 30)),
            max_tokens=int(os.getenv('AI_MAX_TOKENS', 800))
        )

        self.progress = ProgressConfig(
            goal=int(os.getenv('GOAL_AMOUNT', 60000)),
            ideal_daily_step=int(os.getenv('IDEAL_DAILY_STEP', 1000)),
            chart_days_before=int(os.getenv('CHART_DAYS_BEFORE', 13)),
            chart_days_after=int(os.getenv('CHART_DAYS_AFTER', 14)),
            recent_series_days=int(os.getenv('RECENT_SERIES_DAYS', 14))
        )

        self.timezone = os.getenv('TIMEZONE', 'Europe/Moscow')

        # Логирование
        self.log_dir = Path(os.getenv('LOG_DIR', 'logs'))
        self.log_level = LogLevel(os.getenv('LOG_LEVEL', 'INFO'))
        self.log_to_file = os.getenv('LOG_TO_FILE', 'false').lower() == 'true'
        self.log_format = os.getenv(
            'LOG_FORMAT',
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )

    def _validate_config(self):
        """Валидация конфигурации"""
        errors = []

        if not self.store.base_url.startswith(('http://', 'https://')):
            errors.append(f"STATE_API_URL должен начинаться с http:// или https://: {self.store.base_url}")

        if self.store.debounce_seconds < 0:
            errors.append("SAVE_DEBOUNCE_SECONDS не может быть отрицательным")

        if self.store.load_retries < 1:
            errors.append("STORE_LOAD_RETRIES должен быть не меньше 1")

        if self.progress.goal <= 0:
            errors.append("GOAL_AMOUNT должен быть положительным числом")

        if self.progress.chart_days_before < 0 or self.progress.chart_days_after < 0:
            errors.append("Границы окна графика не могут быть отрицательными")

        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            errors.append(f"Неизвестная таймзона: {self.timezone}")

        if errors:
            raise ValueError("Ошибки конфигурации:\n" + "\n".join(f"• {error}" for error in errors))

        if not self.ai.api_key:
            logging.getLogger(__name__).debug("OPENROUTER_API_KEY not set - analysis will use fallback text")

    def get_logging_config(self) -> Dict[str, Any]:
        """Получение конфигурации логирования"""
        handlers = ['console']
        if self.log_to_file:
            handlers.append('file')

        logging_config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                }
            },
            'loggers': {
                '': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.log_to_file:
            logging_config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'filename': str(self.log_dir / f"discipline_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        for noisy in ('aiohttp', 'openai', 'httpx'):
            logging_config['loggers'][noisy] = {
                'level': 'WARNING',
                'handlers': handlers,
                'propagate': False
            }

        return logging_config

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def get_feature_status(self) -> Dict[str, bool]:
        """Получение статуса функций"""
        return {
            'ai_enabled': bool(self.ai.api_key),
            'file_logging': self.log_to_file
        }

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация конфигурации в словарь"""
        return {
            'environment': self.environment.value,
            'store': {
                'base_url': self.store.base_url,
                'debounce_seconds': self.store.debounce_seconds
            },
            'ai': {
                'model': self.ai.model,
                'api_key': (self.ai.api_key[:6] + "...") if self.ai.api_key else None  # Скрываем ключ
            },
            'progress': {
                'goal': self.progress.goal,
                'ideal_daily_step': self.progress.ideal_daily_step
            },
            'timezone': self.timezone,
            'log_level': self.log_level.value
        }


# Глобальный экземпляр конфигурации
config = DisciplineConfig()

__all__ = [
    'config',
    'DisciplineConfig',
    'Environment',
    'LogLevel',
    'StoreConfig',
    'AIConfig',
    'ProgressConfig'
]
