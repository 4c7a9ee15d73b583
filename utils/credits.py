from __future__ import annotations

from typing import Any, Iterable

# Registration cap per semester. Fixed on the client, the server re-checks.
MAX_CREDITS = 21


def is_credit_limit_exceeded(current_credits: int, additional_credits: int) -> bool:
    # exactly MAX_CREDITS is still allowed
    return current_credits + additional_credits > MAX_CREDITS


def calculate_total_credits(courses: Iterable[Any]) -> int:
    return sum((getattr(course, "credits", None) or 0) for course in courses)


def get_remaining_credits(current_credits: int) -> int:
    return max(0, MAX_CREDITS - current_credits)


def get_max_credits() -> int:
    return MAX_CREDITS
