#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stark Discipline Hub v1.2 - Command Line
Текстовый интерфейс: статус, отметки задач и штрафов, анализ Jarvis

Версия: 1.2.0
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from config import config
from core.models import ValidationError
from services.tracker import DisciplineTracker
from ui.progress import goal_bar, streak_emoji
from utils.datetime_utils import parse_date_key
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stark-discipline", description="Stark Discipline Hub")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Баланс, серии и окно графика")

    toggle = subparsers.add_parser("toggle", help="Переключить отметку задачи")
    toggle.add_argument("date", help="Дата YYYY-MM-DD")
    toggle.add_argument("task_id")

    fine = subparsers.add_parser("fine", help="Переключить отметку штрафа")
    fine.add_argument("date", help="Дата YYYY-MM-DD")
    fine.add_argument("fine_id")

    subparsers.add_parser("analyze", help="Анализ последних дней через Jarvis")
    return parser


def print_status(tracker: DisciplineTracker) -> None:
    result, newly_unlocked = tracker.progress()

    print(goal_bar(result.balance, result.goal))
    print()
    print("Серии:")
    for task in tracker.catalog.tasks:
        state = result.streaks[task.rule_id]
        print(f"  {streak_emoji(state.count, state.near_bonus)} {task.title}: {state.count}")

    print()
    print("График (баланс / идеал):")
    for point in result.chart_series:
        balance = "—" if point.balance is None else point.balance
        ideal = "—" if point.ideal is None else point.ideal
        marker = " <" if point.date_key == result.today_key else ""
        print(f"  {point.label:>7}  {balance!s:>8}  {ideal!s:>8}{marker}")

    for definition in newly_unlocked:
        print(f"\n🏆 {tracker.evaluator.format_achievement_message(definition.achievement_id)}")


async def run(args: argparse.Namespace) -> int:
    tracker = DisciplineTracker()
    try:
        if not await tracker.load():
            print("❌ Не удалось загрузить состояние", file=sys.stderr)
            return 2

        if args.command == "status":
            print_status(tracker)
        elif args.command in ("toggle", "fine"):
            try:
                on_date = parse_date_key(args.date)
            except ValueError:
                print(f"❌ Неверная дата: {args.date}", file=sys.stderr)
                return 1
            try:
                if args.command == "toggle":
                    value = tracker.toggle_task(on_date, args.task_id)
                    rule_id = args.task_id
                else:
                    value = tracker.toggle_fine(on_date, args.fine_id)
                    rule_id = args.fine_id
            except ValidationError as e:
                print(f"❌ {e}", file=sys.stderr)
                return 1
            print(f"{'✅' if value else '⭕'} {rule_id} {args.date}")
            print_status(tracker)
        elif args.command == "analyze":
            print(await tracker.analyze())
        return 0
    finally:
        await tracker.close()


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging(config)
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
