import re
from collections import deque
from datetime import datetime, timezone
from typing import Optional

REDACTED = "***"
_TASK_PATH_RE = re.compile(r"/task(?:[/?]|$)")


def classify_request(path: str) -> Optional[str]:
    """Tag task-related vendor calls so they can be inspected separately."""
    if "/tasks/" not in path:
        return None
    if "/lists" in path:
        return "task_list"
    if _TASK_PATH_RE.search(path):
        return "task"
    return None


class RequestLog:
    """
    Bounded record of the most recent Staffbase requests, kept for the debug endpoints.

    The last request overall, the last task-list creation and the last task
    creation are tracked separately. Entries are overwritten, last write wins.
    """

    def __init__(self, maxlen: int = 50):
        self._entries = deque(maxlen=maxlen)
        self._last_by_kind = {}

    def record(self, method: str, url: str, headers: dict, body=None, path: str = "") -> dict:
        entry = {
            "method": method,
            "url": url,
            "headers": {k: (REDACTED if k.lower() == "authorization" else v) for k, v in (headers or {}).items()},
            "body": body,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self._entries.append(entry)
        self._last_by_kind["any"] = entry

        kind = classify_request(path or url)
        if kind and method.upper() == "POST":
            self._last_by_kind[kind] = entry
        return entry

    def last(self, kind: str = "any") -> Optional[dict]:
        return self._last_by_kind.get(kind)

    def entries(self) -> list:
        return list(self._entries)

    def __len__(self):
        return len(self._entries)
