"""Shared builders for Stark Discipline Hub tests."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable

import pytz

from core.models import HistoryStore
from utils.datetime_utils import date_key, week_key

MSK = pytz.timezone("Europe/Moscow")


def moment(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    """Return a timezone-aware local datetime."""
    return MSK.localize(datetime(year, month, day, hour, minute))


def build_store(marks: Dict[date, Iterable[str]], unlocked=None) -> HistoryStore:
    """Build a HistoryStore with the given rule ids marked on each date."""
    store = HistoryStore(unlocked=list(unlocked or []))
    for day, rule_ids in marks.items():
        bucket = store.weeks.setdefault(week_key(day), {})
        record = bucket.setdefault(date_key(day), {})
        for rule_id in rule_ids:
            record[rule_id] = True
    return store
