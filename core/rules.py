#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stark Discipline Hub v1.2 - Rule Catalog
Каталог задач (награды) и штрафов с ограничениями доступности

Версия: 1.2.0
"""

from typing import Dict, List, Optional, Tuple, Union, FrozenSet, Iterable
from dataclasses import dataclass, field
import logging

from core.models import ValidationError

logger = logging.getLogger(__name__)

# ===== ОГРАНИЧЕНИЯ ДОСТУПНОСТИ =====

@dataclass(frozen=True)
class WeekdaysOnly:
    """Только будни (Пн-Пт)"""
    pass


@dataclass(frozen=True)
class SpecificDays:
    """Только указанные дни недели (Monday=0 … Sunday=6)"""
    days: FrozenSet[int]

    def __post_init__(self):
        if not self.days or any(not 0 <= d <= 6 for d in self.days):
            raise ValidationError(f"SpecificDays: дни должны быть в диапазоне 0..6: {sorted(self.days)}")


@dataclass(frozen=True)
class DeadlineHour:
    """Отметка за сегодня закрывается в указанный час"""
    hour: int

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValidationError(f"DeadlineHour: час должен быть от 0 до 23: {self.hour}")


Constraint = Union[WeekdaysOnly, SpecificDays, DeadlineHour]

# ===== ПРАВИЛА СУММЫ ШТРАФА =====

@dataclass(frozen=True)
class FixedAmount:
    amount: int

    def cost(self, occurrence: int = 0) -> int:
        return self.amount


@dataclass(frozen=True)
class ProgressiveAmount:
    """Стоимость растёт с каждым повтором за тот же день: base + n * increment"""
    base: int
    increment: int

    def cost(self, occurrence: int = 0) -> int:
        return self.base + max(0, occurrence) * self.increment


AmountRule = Union[FixedAmount, ProgressiveAmount]

# ===== ПРАВИЛА =====

@dataclass(frozen=True)
class TaskRule:
    """Задача, приносящая награду"""
    rule_id: str
    title: str
    reward: int
    constraints: Tuple[Constraint, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.rule_id:
            raise ValidationError("rule_id задачи не может быть пустым")
        if not isinstance(self.reward, int) or self.reward <= 0:
            raise ValidationError(f"Награда задачи {self.rule_id} должна быть положительным целым")

    @property
    def required_days(self) -> Optional[FrozenSet[int]]:
        for constraint in self.constraints:
            if isinstance(constraint, SpecificDays):
                return constraint.days
        return None


@dataclass(frozen=True)
class FineRule:
    """Штраф за нарушение"""
    rule_id: str
    title: str
    amount: AmountRule

    def __post_init__(self):
        if not self.rule_id:
            raise ValidationError("rule_id штрафа не может быть пустым")

    @property
    def progressive(self) -> bool:
        return isinstance(self.amount, ProgressiveAmount)

    def cost(self, occurrence: int = 0) -> int:
        return self.amount.cost(occurrence)

    @property
    def display_amount(self) -> str:
        if isinstance(self.amount, ProgressiveAmount):
            return f"-{self.amount.base}++"
        return f"-{self.amount.amount}"

# ===== КАТАЛОГ =====

class RuleCatalog:
    """Неизменяемый каталог правил"""

    def __init__(self, tasks: Iterable[TaskRule], fines: Iterable[FineRule],
                 strength_task_id: Optional[str] = None):
        self._tasks: Dict[str, TaskRule] = {}
        self._fines: Dict[str, FineRule] = {}

        for task in tasks:
            self._register(task, self._tasks)
        for fine in fines:
            self._register(fine, self._fines)

        if strength_task_id is not None:
            strength = self._tasks.get(strength_task_id)
            if strength is None:
                raise ValidationError(f"Силовая задача {strength_task_id} отсутствует в каталоге")
            if not strength.required_days or len(strength.required_days) != 2:
                raise ValidationError(f"Силовая задача {strength_task_id} должна иметь ровно два дня")
        self.strength_task_id = strength_task_id

    def _register(self, rule, target: Dict) -> None:
        if rule.rule_id in self._tasks or rule.rule_id in self._fines:
            raise ValidationError(f"Повторяющийся id правила: {rule.rule_id}")
        target[rule.rule_id] = rule

    @property
    def tasks(self) -> List[TaskRule]:
        return list(self._tasks.values())

    @property
    def fines(self) -> List[FineRule]:
        return list(self._fines.values())

    @property
    def strength_task(self) -> Optional[TaskRule]:
        if self.strength_task_id is None:
            return None
        return self._tasks[self.strength_task_id]

    def get_task(self, rule_id: str) -> Optional[TaskRule]:
        return self._tasks.get(rule_id)

    def get_fine(self, rule_id: str) -> Optional[FineRule]:
        return self._fines.get(rule_id)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._tasks or rule_id in self._fines


TASKS = [
    TaskRule('wake730', 'Wake Up 07:30', 100, (WeekdaysOnly(), DeadlineHour(8))),
    TaskRule('exercise', 'Exercise', 100),
    TaskRule('cleanFood', 'Clean Food', 250),
    TaskRule('noPorn', 'Dopamine Fast', 250),
    TaskRule('strength', 'Strength Training', 150, (SpecificDays(frozenset({2, 5})),)),
    TaskRule('jarvisV2', 'Project: JARVIS V2', 200),
    TaskRule('english', 'English Session (1h)', 200),
    TaskRule('reading', 'Reading (1h)', 100),
]

FINES = [
    FineRule('smoking', 'Smoking (Level 5 Alert)', ProgressiveAmount(base=3000, increment=1000)),
    FineRule('fastfood', 'Fastfood', FixedAmount(1000)),
    FineRule('alcohol', 'Alcohol', FixedAmount(1000)),
]

STRENGTH_TASK_ID = 'strength'

DEFAULT_CATALOG = RuleCatalog(TASKS, FINES, strength_task_id=STRENGTH_TASK_ID)

__all__ = [
    'WeekdaysOnly',
    'SpecificDays',
    'DeadlineHour',
    'Constraint',
    'FixedAmount',
    'ProgressiveAmount',
    'AmountRule',
    'TaskRule',
    'FineRule',
    'RuleCatalog',
    'TASKS',
    'FINES',
    'STRENGTH_TASK_ID',
    'DEFAULT_CATALOG'
]
