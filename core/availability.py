# core/availability.py

from datetime import date, datetime
from typing import Union

from core.rules import TaskRule, FineRule, WeekdaysOnly, SpecificDays, DeadlineHour


def constraint_allows(constraint, day_index: int, on_date: date, now: datetime) -> bool:
    if isinstance(constraint, WeekdaysOnly):
        return day_index < 5
    if isinstance(constraint, SpecificDays):
        return day_index in constraint.days
    if isinstance(constraint, DeadlineHour):
        # Дедлайн действует только для сегодняшней даты
        if on_date == now.date() and now.hour >= constraint.hour:
            return False
        return True
    raise TypeError(f"Unknown availability constraint: {type(constraint).__name__}")


def is_available(rule: Union[TaskRule, FineRule], day_index: int, on_date: date, now: datetime) -> bool:
    """Можно ли отметить правило в эту дату при текущем времени now"""
    if isinstance(rule, FineRule):
        return True
    return all(constraint_allows(c, day_index, on_date, now) for c in rule.constraints)
