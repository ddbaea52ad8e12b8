#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stark Discipline Hub v1.2 - Achievement System
Каталог достижений и определение новых открытий по контексту истории

Версия: 1.2.0
"""

from typing import Dict, List, Optional, Any, Callable, Iterable, Tuple
from dataclasses import dataclass, field
from enum import Enum
from abc import ABC, abstractmethod
import logging

from config import config
from core.models import AchievementContext, ValidationError

logger = logging.getLogger(__name__)

# ===== ENUMS =====

class AchievementCategory(Enum):
    """Категории достижений"""
    MILESTONES = "milestones"
    DISCIPLINE = "discipline"
    STRENGTH = "strength"

# ===== DATA CLASSES =====

@dataclass(frozen=True)
class AchievementDefinition:
    """Определение достижения"""
    achievement_id: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'achievement_id': self.achievement_id,
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
            'category': self.category.value,
            'tags': list(self.tags)
        }

# ===== ACHIEVEMENT CHECKERS =====

class AchievementChecker(ABC):
    """Базовый класс для проверки достижений"""

    @abstractmethod
    def check(self, context: AchievementContext) -> bool:
        """Проверить условие достижения"""
        pass

    @abstractmethod
    def get_progress(self, context: AchievementContext) -> Tuple[int, int]:
        """Получить прогресс (текущий, максимальный)"""
        pass


class BalanceChecker(AchievementChecker):
    """Баланс достиг порога"""

    def __init__(self, target_balance: int):
        self.target_balance = target_balance

    def check(self, context: AchievementContext) -> bool:
        return context.balance >= self.target_balance

    def get_progress(self, context: AchievementContext) -> Tuple[int, int]:
        current = max(0, min(self.target_balance, context.balance))
        return current, self.target_balance


class ConditionalChecker(AchievementChecker):
    """Проверка произвольного условия над контекстом"""

    def __init__(self, condition_func: Callable[[AchievementContext], bool]):
        self.condition_func = condition_func

    def check(self, context: AchievementContext) -> bool:
        return bool(self.condition_func(context))

    def get_progress(self, context: AchievementContext) -> Tuple[int, int]:
        return (1 if self.check(context) else 0, 1)

# ===== ACHIEVEMENT REGISTRY =====

class AchievementRegistry:
    """Реестр всех достижений"""

    def __init__(self, load_defaults: bool = True, goal: Optional[int] = None):
        self.achievements: Dict[str, AchievementDefinition] = {}
        self.checkers: Dict[str, AchievementChecker] = {}
        self.goal = goal if goal is not None else config.progress.goal
        if load_defaults:
            self._load_default_achievements()

    def register_achievement(self, definition: AchievementDefinition,
                             checker: AchievementChecker) -> None:
        """Зарегистрировать достижение"""
        if definition.achievement_id in self.achievements:
            raise ValidationError(f"Достижение {definition.achievement_id} уже зарегистрировано")
        self.achievements[definition.achievement_id] = definition
        self.checkers[definition.achievement_id] = checker
        logger.debug(f"Registered achievement: {definition.achievement_id}")

    def get_achievement(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self.achievements.get(achievement_id)

    def get_checker(self, achievement_id: str) -> Optional[AchievementChecker]:
        return self.checkers.get(achievement_id)

    def get_all_achievements(self) -> List[AchievementDefinition]:
        return list(self.achievements.values())

    def _load_default_achievements(self):
        """Загрузка стандартных достижений"""

        # ===== MILESTONES =====

        self.register_achievement(
            AchievementDefinition(
                achievement_id="first_thousand",
                title="Первая тысяча",
                description="Накопите 1 000 на балансе",
                icon="💰",
                category=AchievementCategory.MILESTONES
            ),
            BalanceChecker(1000)
        )

        self.register_achievement(
            AchievementDefinition(
                achievement_id="halfway_there",
                title="Половина пути",
                description="Накопите половину суммы на часы",
                icon="⌚",
                category=AchievementCategory.MILESTONES
            ),
            BalanceChecker(self.goal // 2)
        )

        self.register_achievement(
            AchievementDefinition(
                achievement_id="watch_acquired",
                title="Часы куплены",
                description="Достигните цели накоплений",
                icon="🏆",
                category=AchievementCategory.MILESTONES
            ),
            BalanceChecker(self.goal)
        )

        # ===== DISCIPLINE =====

        self.register_achievement(
            AchievementDefinition(
                achievement_id="clean_week",
                title="Чистая неделя",
                description="Полная неделя отметок без единого штрафа",
                icon="🛡️",
                category=AchievementCategory.DISCIPLINE
            ),
            ConditionalChecker(lambda context: context.fine_free_week)
        )

        self.register_achievement(
            AchievementDefinition(
                achievement_id="perfect_day",
                title="Идеальный день",
                description="Выполните все доступные задачи за один день",
                icon="✨",
                category=AchievementCategory.DISCIPLINE
            ),
            ConditionalChecker(lambda context: context.all_tasks_day)
        )

        # ===== STRENGTH =====

        self.register_achievement(
            AchievementDefinition(
                achievement_id="iron_week",
                title="Железная неделя",
                description="Обе силовые тренировки за одну неделю",
                icon="🏋️",
                category=AchievementCategory.STRENGTH
            ),
            ConditionalChecker(lambda context: context.dual_strength_week)
        )

# ===== ACHIEVEMENT EVALUATOR =====

class AchievementEvaluator:
    """Определение новых достижений относительно уже открытых"""

    def __init__(self, registry: Optional[AchievementRegistry] = None):
        self.registry = registry or AchievementRegistry()

    def evaluate(self, unlocked: Iterable[str], context: AchievementContext) -> List[AchievementDefinition]:
        """Достижения, условие которых выполнено и которые ещё не открыты"""
        already = set(unlocked)
        newly_unlocked = []

        for achievement_id, definition in self.registry.achievements.items():
            if achievement_id in already:
                continue

            checker = self.registry.get_checker(achievement_id)
            try:
                if checker.check(context):
                    newly_unlocked.append(definition)
                    logger.info(f"🏆 Achievement unlocked: {achievement_id}")
            except Exception as e:
                logger.error(f"Error checking achievement {achievement_id}: {e}")

        return newly_unlocked

    @staticmethod
    def merge_unlocked(unlocked: Iterable[str], new_ids: Iterable[str]) -> List[str]:
        """Объединение без потерь: открытое достижение никогда не отзывается"""
        merged = list(unlocked)
        for achievement_id in new_ids:
            if achievement_id not in merged:
                merged.append(achievement_id)
        return merged

    def get_progress(self, context: AchievementContext) -> Dict[str, Tuple[int, int]]:
        return {
            achievement_id: checker.get_progress(context)
            for achievement_id, checker in self.registry.checkers.items()
        }

    def format_achievement_message(self, achievement_id: str) -> str:
        definition = self.registry.get_achievement(achievement_id)
        if not definition:
            return f"🏅 {achievement_id}"
        return f"{definition.icon} {definition.title} - {definition.description}"


__all__ = [
    'AchievementCategory',
    'AchievementDefinition',
    'AchievementChecker',
    'BalanceChecker',
    'ConditionalChecker',
    'AchievementRegistry',
    'AchievementEvaluator'
]
