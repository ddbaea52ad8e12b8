# ui/progress.py

def progress_bar(percent: float, length: int = 12):
    """Генерирует текстовый progress bar (emoji/блоки)"""
    clamped = max(0.0, min(100.0, percent))
    done = int(length * clamped // 100)
    todo = length - done
    return "🟩" * done + "⬜️" * todo + f" {percent:.1f}%"


def goal_bar(balance: int, goal: int):
    percent = balance / goal * 100 if goal else 0.0
    return f"Баланс: {balance}/{goal} RUB\n" + progress_bar(percent)


def streak_emoji(streak: int, near_bonus: bool = False):
    if near_bonus:
        return "⚡"
    elif streak >= 2:
        return "🔥"
    elif streak >= 1:
        return "✨"
    else:
        return "🔹"
