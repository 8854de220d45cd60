import re
from dataclasses import dataclass
from typing import Optional

from dateutil import parser as date_parser

from core.logging_config import logger
from core.utils import decode_upload, split_lines

_DOTTED_DATE_RE = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")   # DD.MM.YYYY
_SLASHED_DATE_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")  # M/D/YYYY, MM/DD/YYYY

DUE_TIME = "T23:59:59Z"
START_TIME = "T09:00:00Z"


@dataclass
class TaskRecord:
    title: str
    description: Optional[str] = None
    due_date: Optional[str] = None

    @property
    def start_date(self) -> Optional[str]:
        return start_date_for(self.due_date)

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "dueDate": self.due_date}


def normalize_due_date(date_str: str) -> Optional[str]:
    """
    Normalize a task date to an end-of-day UTC timestamp, e.g. '2024-12-25T23:59:59Z'.
    Returns None when the value cannot be read as a date.
    """
    date_str = (date_str or "").strip()
    if not date_str:
        return None

    if _DOTTED_DATE_RE.match(date_str):
        day, month, year = date_str.split(".")
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}{DUE_TIME}"

    if _SLASHED_DATE_RE.match(date_str):
        month, day, year = date_str.split("/")
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}{DUE_TIME}"

    try:
        parsed = date_parser.parse(date_str)
    except (ValueError, OverflowError) as e:
        logger.debug(f"[TASK_CSV] Unparseable date {date_str!r}: {e}")
        return None
    return f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}{DUE_TIME}"


def start_date_for(due_date: Optional[str]) -> Optional[str]:
    """Same calendar day as the due date, at 09:00 UTC."""
    if not due_date:
        return None
    return f"{due_date[:10]}{START_TIME}"


def parse_task_csv(raw) -> list:
    """
    Parse a semicolon-delimited task file: title;description;date

    Rows with fewer than three fields or a blank title are skipped.
    A date that cannot be parsed leaves the task without a due date.
    """
    tasks = []
    for line in split_lines(decode_upload(raw)):
        parts = [p.strip() for p in line.split(";")]
        if len(parts) < 3:
            logger.debug(f"[TASK_CSV] Skipping row with {len(parts)} field(s): {line!r}")
            continue

        title, description, date_str = parts[0], parts[1], parts[2]
        if not title:
            logger.warning(f"[TASK_CSV] Skipping task with empty title: {line!r}")
            continue

        due_date = normalize_due_date(date_str)
        if date_str and due_date is None:
            logger.warning(f"[TASK_CSV] Could not parse date \"{date_str}\" for task \"{title}\"")

        tasks.append(TaskRecord(title=title, description=description or None, due_date=due_date))

    logger.info(f"[TASK_CSV] Parsed {len(tasks)} tasks from task CSV")
    return tasks
