# services/tracker.py

import copy
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple, Any

from config import config
from core.achievements import AchievementDefinition, AchievementEvaluator
from core.availability import is_available
from core.models import HistoryStore, ProgressResult, UnknownRuleError, RuleUnavailableError
from core.progress import ProgressEngine
from core.rules import RuleCatalog, TaskRule, DEFAULT_CATALOG
from services.ai_service import HistoryAnalyst
from services.state_store import StateStoreClient, DebouncedWriter, StateStoreError, StoreUnavailableError
from utils.datetime_utils import Clock, SystemClock, add_days, date_key, day_index, week_start, week_dates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeekCell:
    date_key: str
    checked: bool
    enabled: bool


@dataclass(frozen=True)
class WeekRow:
    task: TaskRule
    cells: Tuple[WeekCell, ...]


@dataclass(frozen=True)
class WeekView:
    """Недельная сетка задач"""
    week_key: str
    rows: Tuple[WeekRow, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'week': self.week_key,
            'rows': [
                {
                    'task_id': row.task.rule_id,
                    'title': row.task.title,
                    'reward': row.task.reward,
                    'cells': [
                        {'date': cell.date_key, 'checked': cell.checked, 'enabled': cell.enabled}
                        for cell in row.cells
                    ]
                }
                for row in self.rows
            ]
        }


class DisciplineTracker:
    """
    Сессия одного пользователя: авторитетная копия HistoryStore в памяти,
    изменения уходят в хранилище через отложенную запись.
    """

    def __init__(self, client: Optional[StateStoreClient] = None,
                 clock: Optional[Clock] = None,
                 catalog: Optional[RuleCatalog] = None,
                 evaluator: Optional[AchievementEvaluator] = None,
                 analyst: Optional[HistoryAnalyst] = None,
                 writer: Optional[DebouncedWriter] = None):
        self.client = client or StateStoreClient()
        self.clock = clock or SystemClock(config.timezone)
        self.catalog = catalog or DEFAULT_CATALOG
        self.engine = ProgressEngine(self.catalog)
        self.evaluator = evaluator or AchievementEvaluator()
        self.analyst = analyst
        self.writer = writer or DebouncedWriter(self.client.save)

        self.store = HistoryStore.empty()
        self.loaded = False
        self.load_failed = False

    async def load(self) -> bool:
        """Загрузить состояние; при недоступности хранилища выставляется load_failed"""
        try:
            self.store = await self.client.load()
        except StoreUnavailableError as e:
            logger.error(f"❌ Failed to load state: {e}")
            self.load_failed = True
            return False

        self.loaded = True
        self.load_failed = False
        return True

    def _ensure_loaded(self) -> None:
        # Отметки разрешены только после успешной загрузки истории
        if not self.loaded:
            raise StateStoreError("История не загружена, изменения не сохраняются")

    def _persist(self) -> None:
        if not self.loaded:
            logger.warning("State not loaded, skipping save")
            return
        self.writer.schedule(copy.deepcopy(self.store))

    # ===== ОТМЕТКИ =====

    def is_marked(self, on_date: date, rule_id: str) -> bool:
        return self.store.is_marked(on_date, rule_id)

    def toggle_task(self, on_date: date, task_id: str) -> bool:
        """Переключить отметку задачи; возвращает новое значение"""
        self._ensure_loaded()
        task = self.catalog.get_task(task_id)
        if task is None:
            raise UnknownRuleError(f"Неизвестная задача: {task_id}")

        if not is_available(task, day_index(on_date), on_date, self.clock.now()):
            raise RuleUnavailableError(f"Задача {task_id} недоступна {date_key(on_date)}")

        value = not self.store.is_marked(on_date, task_id)
        self.store.set_mark(on_date, task_id, value)
        logger.info(f"Task {task_id} on {date_key(on_date)} -> {value}")
        self._persist()
        return value

    def toggle_fine(self, on_date: date, fine_id: str) -> bool:
        """Переключить отметку штрафа; возвращает новое значение"""
        self._ensure_loaded()
        if self.catalog.get_fine(fine_id) is None:
            raise UnknownRuleError(f"Неизвестный штраф: {fine_id}")

        value = not self.store.is_marked(on_date, fine_id)
        self.store.set_mark(on_date, fine_id, value)
        logger.info(f"Fine {fine_id} on {date_key(on_date)} -> {value}")
        self._persist()
        return value

    # ===== ПРОГРЕСС =====

    def progress(self) -> Tuple[ProgressResult, List[AchievementDefinition]]:
        """Пересчитать прогресс и открыть новые достижения"""
        result = self.engine.compute(self.store, self.clock.now())
        newly_unlocked = self.evaluator.evaluate(self.store.unlocked, result.achievement_context)

        if newly_unlocked:
            self.store.unlocked = AchievementEvaluator.merge_unlocked(
                self.store.unlocked,
                [definition.achievement_id for definition in newly_unlocked]
            )
            self._persist()

        return result, newly_unlocked

    def week_view(self, week_offset: int = 0) -> WeekView:
        now = self.clock.now()
        monday = add_days(week_start(now.date()), week_offset * 7)

        rows = []
        for task in self.catalog.tasks:
            cells = tuple(
                WeekCell(
                    date_key=date_key(day),
                    checked=self.store.is_marked(day, task.rule_id),
                    enabled=is_available(task, day_index(day), day, now)
                )
                for day in week_dates(monday)
            )
            rows.append(WeekRow(task=task, cells=cells))

        return WeekView(week_key=date_key(monday), rows=tuple(rows))

    async def analyze(self) -> str:
        if self.analyst is None:
            self.analyst = HistoryAnalyst()
        result, _ = self.progress()
        return await self.analyst.summarize(result.recent_series(config.progress.recent_series_days))

    async def close(self) -> None:
        await self.writer.close()
        await self.client.close()
        if self.analyst is not None:
            await self.analyst.close()
