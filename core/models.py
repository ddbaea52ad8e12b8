#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stark Discipline Hub v1.2 - Core Data Models
Модели истории, результатов расчёта и исключения валидации

Версия: 1.2.0
"""

import json
from datetime import date
from typing import Dict, List, Optional, Any, Iterator, Tuple, Union
from dataclasses import dataclass, field
import logging

from utils.datetime_utils import date_key, week_key, parse_date_key

logger = logging.getLogger(__name__)

DailyRecord = Dict[str, bool]
WeekBucket = Dict[str, DailyRecord]

# ===== EXCEPTIONS =====

class ValidationError(Exception):
    """Ошибка валидации данных"""
    pass


class UnknownRuleError(ValidationError):
    """Правило с таким id отсутствует в каталоге"""
    pass


class RuleUnavailableError(ValidationError):
    """Правило недоступно для отметки в эту дату"""
    pass

# ===== HISTORY STORE =====

@dataclass
class HistoryStore:
    """
    Полное сохраняемое состояние: недели с дневными отметками и
    список открытых достижений.

    Неизвестные ключи верхнего уровня сохраняются в ``extra`` и
    возвращаются при сериализации без изменений.
    """
    weeks: Dict[str, WeekBucket] = field(default_factory=dict)
    unlocked: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "HistoryStore":
        return cls()

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryStore":
        """Восстановление из JSON-совместимого словаря с заменой битых частей"""
        if not isinstance(data, dict):
            logger.warning(f"Malformed state blob ({type(data).__name__}), using empty store")
            return cls.empty()

        raw_weeks = data.get('weeks', {})
        if not isinstance(raw_weeks, dict):
            logger.warning("State 'weeks' is not a mapping, discarding it")
            raw_weeks = {}

        weeks: Dict[str, WeekBucket] = {}
        for wk, bucket in raw_weeks.items():
            if not isinstance(bucket, dict):
                logger.warning(f"Week bucket {wk!r} is not a mapping, skipped")
                continue
            clean_bucket: WeekBucket = {}
            for dk, record in bucket.items():
                if not isinstance(record, dict):
                    logger.warning(f"Record {dk!r} in week {wk!r} is not a mapping, skipped")
                    continue
                clean_bucket[str(dk)] = {str(rule_id): bool(value) for rule_id, value in record.items()}
            weeks[str(wk)] = clean_bucket

        raw_unlocked = data.get('unlocked', [])
        if not isinstance(raw_unlocked, list):
            logger.warning("State 'unlocked' is not a list, discarding it")
            raw_unlocked = []
        unlocked = [item for item in raw_unlocked if isinstance(item, str)]

        extra = {k: v for k, v in data.items() if k not in ('weeks', 'unlocked')}
        return cls(weeks=weeks, unlocked=unlocked, extra=extra)

    @classmethod
    def from_json(cls, raw: Optional[Union[str, bytes]]) -> "HistoryStore":
        if not raw or not raw.strip():
            return cls.empty()
        try:
            if isinstance(raw, bytes):
                raw = raw.decode('utf-8')
            data = json.loads(raw)
        except UnicodeDecodeError as e:
            logger.warning(f"State document is not valid UTF-8, using empty store: {e}")
            return cls.empty()
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt state JSON, using empty store: {e}")
            return cls.empty()
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data['weeks'] = {
            wk: {dk: dict(record) for dk, record in bucket.items()}
            for wk, bucket in self.weeks.items()
        }
        data['unlocked'] = list(self.unlocked)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True, indent=2)

    # ===== ДОСТУП К ЗАПИСЯМ =====

    def daily_records(self) -> Dict[date, DailyRecord]:
        """
        Все записи по датам. Ключи дат с неверным форматом пропускаются,
        неделя всегда выводится из самой даты; одна дата в нескольких
        корзинах объединяется по логическому ИЛИ.
        """
        merged: Dict[date, DailyRecord] = {}
        for wk, bucket in self.weeks.items():
            for dk, record in bucket.items():
                try:
                    day = parse_date_key(dk)
                except ValueError:
                    logger.debug(f"Ignoring invalid date key {dk!r} in week {wk!r}")
                    continue
                if week_key(day) != wk:
                    logger.debug(f"Date {dk} filed under week {wk}, counting it for its own week")
                target = merged.setdefault(day, {})
                for rule_id, value in record.items():
                    target[rule_id] = target.get(rule_id, False) or bool(value)
        return merged

    def iter_records(self) -> Iterator[Tuple[date, DailyRecord]]:
        records = self.daily_records()
        for day in sorted(records):
            yield day, records[day]

    def get_record(self, day: date) -> DailyRecord:
        dk = date_key(day)
        record: DailyRecord = {}
        for bucket in self.weeks.values():
            for rule_id, value in bucket.get(dk, {}).items():
                record[rule_id] = record.get(rule_id, False) or value
        return record

    def is_marked(self, day: date, rule_id: str) -> bool:
        return self.get_record(day).get(rule_id, False)

    def set_mark(self, day: date, rule_id: str, value: bool) -> None:
        """Записать отметку в корзину недели, выведенную из даты"""
        dk = date_key(day)
        bucket = self.weeks.setdefault(week_key(day), {})
        bucket.setdefault(dk, {})[rule_id] = bool(value)
        # Дубликаты даты в чужих корзинах перезаписываются тем же значением
        for other in self.weeks.values():
            if other is not bucket and dk in other:
                other[dk][rule_id] = bool(value)

    def is_unlocked(self, achievement_id: str) -> bool:
        return achievement_id in self.unlocked

# ===== РЕЗУЛЬТАТЫ РАСЧЁТА =====

@dataclass(frozen=True)
class StreakState:
    """Текущая серия выполнения задачи"""
    task_id: str
    count: int = 0
    near_bonus: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'task_id': self.task_id, 'count': self.count, 'near_bonus': self.near_bonus}


@dataclass(frozen=True)
class DaySummary:
    """Итоги одной записанной даты"""
    date_key: str
    reward: int
    fine: int
    balance: int

    @property
    def delta(self) -> int:
        return self.reward - self.fine

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date_key,
            'reward': self.reward,
            'fine': self.fine,
            'delta': self.delta,
            'balance': self.balance
        }


@dataclass(frozen=True)
class ChartPoint:
    """Точка графика: фактический баланс и идеальная траектория"""
    date_key: str
    label: str
    balance: Optional[int] = None
    ideal: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dateKey': self.date_key,
            'dayLabel': self.label,
            'balance': self.balance,
            'ideal': self.ideal
        }


@dataclass(frozen=True)
class AchievementContext:
    """Сводка истории для проверки достижений"""
    balance: int = 0
    fine_free_week: bool = False
    all_tasks_day: bool = False
    dual_strength_week: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'balance': self.balance,
            'fine_free_week': self.fine_free_week,
            'all_tasks_day': self.all_tasks_day,
            'dual_strength_week': self.dual_strength_week
        }


@dataclass
class ProgressResult:
    """Результат полного пересчёта прогресса"""
    balance: int
    days: List[DaySummary]
    chart_series: List[ChartPoint]
    streaks: Dict[str, StreakState]
    achievement_context: AchievementContext
    goal: int
    today_key: str

    @property
    def goal_progress(self) -> float:
        """Процент выполнения цели"""
        if self.goal <= 0:
            return 0.0
        return self.balance / self.goal * 100

    @property
    def streak_flags(self) -> Dict[str, bool]:
        return {task_id: state.near_bonus for task_id, state in self.streaks.items()}

    def recent_series(self, days: int = 14) -> List[Dict[str, Any]]:
        """Последние N записанных дней для анализа"""
        if days <= 0:
            return []
        return [summary.to_dict() for summary in self.days[-days:]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'balance': self.balance,
            'goal': self.goal,
            'goal_progress': round(self.goal_progress, 2),
            'today': self.today_key,
            'days': [summary.to_dict() for summary in self.days],
            'chart': [point.to_dict() for point in self.chart_series],
            'streaks': {task_id: state.to_dict() for task_id, state in self.streaks.items()},
            'achievement_context': self.achievement_context.to_dict()
        }


__all__ = [
    'DailyRecord',
    'WeekBucket',
    'ValidationError',
    'UnknownRuleError',
    'RuleUnavailableError',
    'HistoryStore',
    'StreakState',
    'DaySummary',
    'ChartPoint',
    'AchievementContext',
    'ProgressResult'
]
