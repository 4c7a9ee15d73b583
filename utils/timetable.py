from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from utils.schedule import DAY_NAMES, time_to_minutes

FIRST_HOUR = 9
LAST_HOUR = 18  # last row starts at 18:00


def build_timetable(courses: Iterable[Any], first_hour: int = FIRST_HOUR, last_hour: int = LAST_HOUR) -> pd.DataFrame:
    """Weekly grid: one row per hour, one column per weekday (월..금).

    A cell holds the subject codes whose slot overlaps that hour, joined
    with " / ", or "" when free.
    """
    hours = list(range(first_hour, last_hour + 1))
    days = list(DAY_NAMES.values())
    grid = pd.DataFrame("", index=hours, columns=days)
    grid.index.name = "hour"

    for course in courses:
        label = getattr(course, "subject_code", None) or getattr(course, "subject_name", None) or ""
        for slot in getattr(course, "schedule", None) or ():
            day = DAY_NAMES.get(slot.day_of_week)
            if day is None:
                continue
            start = time_to_minutes(slot.start_time)
            end = time_to_minutes(slot.end_time)
            for hour in hours:
                if start < (hour + 1) * 60 and hour * 60 < end:
                    cell = grid.at[hour, day]
                    grid.at[hour, day] = f"{cell} / {label}" if cell else label

    return grid


def timetable_rows(grid: pd.DataFrame) -> list[dict[str, Any]]:
    # template friendly: [{"hour": "09:00", "cells": [...]}, ...]
    return [
        {"hour": f"{hour:02d}:00", "cells": list(row)}
        for hour, row in zip(grid.index, grid.itertuples(index=False))
    ]
