"""
Channel label codec.

A managed channel keeps all of its metadata in its Staffbase display title:

    [external]{externalId}:{userCount} - {title}                                      (phase 1)
    [external]{externalId}:{userCount}:{postId}:{taskLists}:{department} - {title}    (phase 2)

`taskLists` is compact JSON (`[{"storeId":..,"installationId":..,"listId":..}]`)
or the literal `unknown`. Older labels carry a single task list id in that slot.

The title is not escaped. A title containing ':' or ' - ' can decode ambiguously.
"""
import json
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

LABEL_PREFIX = "[external]"
UNKNOWN = "unknown"
UNKNOWN_DEPARTMENT = "Unknown"

FORMAT_CURRENT = "current"
FORMAT_LEGACY = "legacy"

_CURRENT_RE = re.compile(
    r"^\[external\]([^:]+):(\d+):([^\s:]+):(.+?):([^\s:]+) - (.+)\Z"
)
_LEGACY_RE = re.compile(
    r"^\[external\]([^:]+):(\d+)(?::([^\s:]+))?(?::([^\s:]+))?(?::([^\s-]+))?\s*-\s*"
)
_EMPTY_SCALARS = {"", UNKNOWN, "null", "undefined"}


@dataclass
class TaskListRef:
    store_id: str
    installation_id: str
    list_id: str

    def to_dict(self) -> dict:
        return {"storeId": self.store_id, "installationId": self.installation_id, "listId": self.list_id}

    @classmethod
    def from_dict(cls, data) -> Optional["TaskListRef"]:
        if not isinstance(data, dict) or data.get("listId") in (None, ""):
            return None
        return cls(
            store_id=str(data.get("storeId", "")),
            installation_id=str(data.get("installationId", "")),
            list_id=str(data["listId"]),
        )


@dataclass
class ChannelLabel:
    external_id: str
    user_count: int
    title: str
    post_id: Optional[str] = None
    task_lists: List[TaskListRef] = field(default_factory=list)
    task_list_id: Optional[str] = None
    department: str = UNKNOWN_DEPARTMENT
    label_format: str = FORMAT_CURRENT


# === Encoding ===

def encode_task_lists(task_lists: Sequence[TaskListRef]) -> str:
    if not task_lists:
        return UNKNOWN
    payload = json.dumps([t.to_dict() for t in task_lists], separators=(",", ":"))
    # ids are all strings, so every "-" sits inside a JSON string and can be escaped
    return payload.replace("-", "\\u002d")


def encode_phase1(external_id, user_count: int, title: str) -> str:
    """Label written right after the channel is created, before post and task lists exist."""
    return f"{LABEL_PREFIX}{external_id}:{user_count} - {title}"


def encode_phase2(external_id, user_count: int, post_id: Optional[str],
                  task_lists: Sequence[TaskListRef], department: str, title: str) -> str:
    """Full label, written once the post id and task lists are known."""
    return (
        f"{LABEL_PREFIX}{external_id}:{user_count}:{post_id or UNKNOWN}:"
        f"{encode_task_lists(task_lists)}:{department} - {title}"
    )


# === Decoding ===

def _scalar(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip() in _EMPTY_SCALARS:
        return None
    return value


def _decode_task_lists(payload: str):
    """Return (task_lists, task_list_id) for the task-list slot of a current-format label."""
    try:
        parsed = json.loads(payload)
    except (ValueError, RecursionError):
        return [], _scalar(payload)

    if not isinstance(parsed, list):
        return [], _scalar(payload)

    task_lists = [ref for ref in (TaskListRef.from_dict(item) for item in parsed) if ref]
    first_id = task_lists[0].list_id if task_lists else None
    return task_lists, first_id


def _parse_current(text: str) -> Optional[ChannelLabel]:
    m = _CURRENT_RE.match(text)
    if not m:
        return None
    external_id, user_count, post_id, payload, department, title = m.groups()
    task_lists, task_list_id = _decode_task_lists(payload)
    return ChannelLabel(
        external_id=external_id,
        user_count=int(user_count),
        title=title,
        post_id=_scalar(post_id),
        task_lists=task_lists,
        task_list_id=task_list_id,
        department=department,
        label_format=FORMAT_CURRENT,
    )


def _parse_legacy(text: str) -> Optional[ChannelLabel]:
    m = _LEGACY_RE.match(text)
    if not m:
        return None
    external_id, user_count, post_id, task_list_id, department = m.groups()
    return ChannelLabel(
        external_id=external_id,
        user_count=int(user_count),
        title=text[m.end():].strip(),
        post_id=_scalar(post_id),
        task_list_id=_scalar(task_list_id),
        department=department or UNKNOWN_DEPARTMENT,
        label_format=FORMAT_LEGACY,
    )


LABEL_PARSERS: Sequence[Callable[[str], Optional[ChannelLabel]]] = (_parse_current, _parse_legacy)


def decode_label(text) -> Optional[ChannelLabel]:
    """
    Decode a channel label. Parsers are tried in order and the first match wins.
    Returns None for anything that is not a managed-channel label. Never raises.
    """
    if not isinstance(text, str) or not text.startswith(LABEL_PREFIX):
        return None
    for parser in LABEL_PARSERS:
        try:
            label = parser(text)
        except ValueError:
            # int() refuses digit runs past the interpreter limit
            continue
        if label is not None:
            return label
    return None


def is_managed_label(text) -> bool:
    return isinstance(text, str) and text.startswith(LABEL_PREFIX)
