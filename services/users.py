from typing import Iterable, List, Tuple

from core.logging_config import logger
from services.staffbase_client import iter_paged


def _display_name(user: dict) -> str:
    name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()
    return name or "Unknown"


def resolve_users(client, csv_ids: Iterable[str], attribute_key: str,
                  page_size: int = 100) -> Tuple[List[dict], List[str]]:
    """
    Match CSV ids against the hidden profile attribute of every user.

    The user directory has no lookup-by-attribute endpoint, so this is a linear
    scan over all pages. It stops early once every id has been matched.
    Returns (found_users, not_found_ids), both in CSV order. A found user is
    {id, csvId, name}.
    """
    wanted = []
    for csv_id in csv_ids:
        if csv_id not in wanted:
            wanted.append(csv_id)
    remaining = set(wanted)
    matches = {}

    if remaining:
        for page in iter_paged(client, "/users", page_size):
            for user in page:
                value = (user.get("profile") or {}).get(attribute_key)
                if isinstance(value, str) and value in remaining:
                    matches[value] = user
                    remaining.discard(value)
            if not remaining:
                break

    found_users = []
    not_found_ids = []
    for csv_id in wanted:
        user = matches.get(csv_id)
        if user is None:
            not_found_ids.append(csv_id)
            continue
        found_users.append({"id": user.get("id"), "csvId": csv_id, "name": _display_name(user)})

    logger.info(f"[USERS] Resolved {len(found_users)}/{len(wanted)} ids via profile.{attribute_key}")
    if not_found_ids:
        logger.debug(f"[USERS] Not found: {not_found_ids}")
    return found_users, not_found_ids

