#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stark Discipline Hub v1.2 - Progress Engine
Пересчёт баланса, серий, графика и контекста достижений по полной истории

Версия: 1.2.0
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
import logging

from config import config, ProgressConfig
from core.availability import is_available
from core.models import (
    HistoryStore, DailyRecord, DaySummary, ChartPoint, StreakState,
    AchievementContext, ProgressResult
)
from core.rules import RuleCatalog, DEFAULT_CATALOG
from utils.datetime_utils import date_key, day_index, day_label, week_start, add_days

logger = logging.getLogger(__name__)

# Серия из BONUS_STREAK дней подряд оплачивается в BONUS_MULTIPLIER раз
NEAR_BONUS_STREAK = 3
BONUS_STREAK = 4
BONUS_MULTIPLIER = 2


class _StreakTracker:
    """Счётчики серий по задачам на время одного прохода"""

    def __init__(self, task_ids: List[str]):
        self.counters: Dict[str, int] = {task_id: 0 for task_id in task_ids}
        self.near_bonus: Dict[str, bool] = {task_id: False for task_id in task_ids}

    def reset(self, task_id: str) -> None:
        self.counters[task_id] = 0
        self.near_bonus[task_id] = False

    def reset_all(self) -> None:
        for task_id in self.counters:
            self.reset(task_id)

    def advance(self, task_id: str) -> bool:
        """Продлить серию; True, если этот день закрывает бонусную серию"""
        self.counters[task_id] += 1
        count = self.counters[task_id]
        if count >= BONUS_STREAK:
            self.reset(task_id)
            return True
        if count == NEAR_BONUS_STREAK:
            self.near_bonus[task_id] = True
        return False

    def snapshot(self) -> Dict[str, StreakState]:
        return {
            task_id: StreakState(task_id=task_id, count=count, near_bonus=self.near_bonus[task_id])
            for task_id, count in self.counters.items()
        }


class ProgressEngine:
    """
    Чистая свёртка истории в баланс, серии, график и контекст достижений.

    Единственная зависимость от времени - параметр ``now``: он задаёт
    "сегодня" для дедлайнов и центр окна графика.
    """

    def __init__(self, catalog: Optional[RuleCatalog] = None,
                 settings: Optional[ProgressConfig] = None):
        self.catalog = catalog or DEFAULT_CATALOG
        self.settings = settings or config.progress

    def compute(self, store: HistoryStore, now: datetime) -> ProgressResult:
        today = now.date()
        records = store.daily_records()
        if not records:
            records = {today: {}}

        ordered_days = sorted(records)
        streaks = _StreakTracker([task.rule_id for task in self.catalog.tasks])

        summaries: List[DaySummary] = []
        fine_totals: Dict[date, int] = {}
        all_tasks_day = False
        running = 0
        previous: Optional[date] = None

        for day in ordered_days:
            record = records[day]

            # Пропущенный календарный день прерывает все серии
            if previous is not None and day - previous != timedelta(days=1):
                streaks.reset_all()

            reward, available_count, done_count = self._apply_tasks(day, record, now, streaks)
            fine = self._fine_total(record)
            self._log_unknown_ids(day, record)

            if available_count and done_count == available_count:
                all_tasks_day = True

            running += reward - fine
            fine_totals[day] = fine
            summaries.append(DaySummary(date_key=date_key(day), reward=reward, fine=fine, balance=running))
            previous = day

        context = AchievementContext(
            balance=running,
            fine_free_week=self._has_fine_free_week(fine_totals),
            all_tasks_day=all_tasks_day,
            dual_strength_week=self._has_dual_strength_week(records, now)
        )

        return ProgressResult(
            balance=running,
            days=summaries,
            chart_series=self._build_chart(summaries, today),
            streaks=streaks.snapshot(),
            achievement_context=context,
            goal=self.settings.goal,
            today_key=date_key(today)
        )

    # ===== ДНЕВНЫЕ ИТОГИ =====

    def _apply_tasks(self, day: date, record: DailyRecord, now: datetime, streaks: _StreakTracker):
        idx = day_index(day)
        reward = 0
        available_count = 0
        done_count = 0

        for task in self.catalog.tasks:
            available = is_available(task, idx, day, now)
            if available:
                available_count += 1

            if not available or not record.get(task.rule_id, False):
                streaks.reset(task.rule_id)
                continue

            done_count += 1
            if streaks.advance(task.rule_id):
                reward += task.reward * BONUS_MULTIPLIER
            else:
                reward += task.reward

        return reward, available_count, done_count

    def _fine_total(self, record: DailyRecord) -> int:
        # Отметки булевы: каждый штраф считается одним первым случаем за день
        return sum(fine.cost(0) for fine in self.catalog.fines if record.get(fine.rule_id, False))

    def _log_unknown_ids(self, day: date, record: DailyRecord) -> None:
        unknown = [rule_id for rule_id in record if rule_id not in self.catalog]
        if unknown:
            logger.debug(f"{date_key(day)}: ignoring unknown rule ids {unknown}")

    # ===== ГРАФИК =====

    def _build_chart(self, summaries: List[DaySummary], today: date) -> List[ChartPoint]:
        balances = {summary.date_key: summary.balance for summary in summaries}
        today_balance = balances.get(date_key(today))
        step = self.settings.ideal_daily_step

        points = []
        for offset in range(-self.settings.chart_days_before, self.settings.chart_days_after + 1):
            day = add_days(today, offset)
            key = date_key(day)
            ideal = None
            if offset >= 0 and today_balance is not None:
                ideal = today_balance + offset * step
            points.append(ChartPoint(date_key=key, label=day_label(day), balance=balances.get(key), ideal=ideal))
        return points

    # ===== КОНТЕКСТ ДОСТИЖЕНИЙ =====

    def _has_fine_free_week(self, fine_totals: Dict[date, int]) -> bool:
        weeks: Dict[date, List[int]] = defaultdict(list)
        for day, fine in fine_totals.items():
            weeks[week_start(day)].append(fine)
        return any(len(fines) == 7 and not any(fines) for fines in weeks.values())

    def _has_dual_strength_week(self, records: Dict[date, DailyRecord], now: datetime) -> bool:
        strength = self.catalog.strength_task
        if strength is None:
            return False

        mondays = {week_start(day) for day in records}
        for monday in mondays:
            done_on_all = True
            for idx in sorted(strength.required_days):
                day = add_days(monday, idx)
                record = records.get(day, {})
                if not (record.get(strength.rule_id, False) and is_available(strength, idx, day, now)):
                    done_on_all = False
                    break
            if done_on_all:
                return True
        return False


def compute_progress(store: HistoryStore, now: datetime,
                     catalog: Optional[RuleCatalog] = None,
                     settings: Optional[ProgressConfig] = None) -> ProgressResult:
    """Быстрый пересчёт прогресса"""
    return ProgressEngine(catalog, settings).compute(store, now)


__all__ = [
    'NEAR_BONUS_STREAK',
    'BONUS_STREAK',
    'BONUS_MULTIPLIER',
    'ProgressEngine',
    'compute_progress'
]
