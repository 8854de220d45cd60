from datetime import datetime, timezone
from typing import Dict, Iterable, List

from dateutil import parser as date_parser

from core.logging_config import logger
from services.channels import NEWS_PLUGIN_ID, channel_id_of, installation_title
from services.label_codec import decode_label, is_managed_label
from services.staffbase_client import iter_paged


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def iter_installations(client, space_id: str, page_size: int = 100):
    """Yield every installation in the space, one page at a time."""
    for page in iter_paged(client, f"/spaces/{space_id}/installations", page_size):
        yield from page


def is_managed_installation(installation: dict) -> bool:
    return installation.get("pluginID") == NEWS_PLUGIN_ID and is_managed_label(installation_title(installation))


def discover_channels(client, space_id: str, page_size: int = 100) -> List[dict]:
    """
    Page through all installations and keep the news channels this tool created.
    Returns raw channel dicts: {id, installationId, label, memberCount, accessorIDs, created, pluginID}.
    """
    channels = []
    kept_count = 0
    skipped_count = 0
    for installation in iter_installations(client, space_id, page_size):
        if not is_managed_installation(installation):
            skipped_count += 1
            continue

        accessor_ids = installation.get("accessorIDs") or []
        channel_id = channel_id_of(installation)
        channels.append({
            "id": channel_id,
            "installationId": installation.get("id"),
            "label": installation_title(installation),
            "memberCount": len(accessor_ids),
            "accessorIDs": accessor_ids,
            "created": installation.get("created") or _now_iso(),
            "pluginID": installation.get("pluginID"),
        })
        kept_count += 1
        logger.debug(f"[DISCOVERY][KEEP] installation {installation.get('id')}, channel {channel_id}, users {len(accessor_ids)}")

    logger.info(f"[DISCOVERY] Managed channels kept: {kept_count}, skipped: {skipped_count}")
    return channels


def _created_sort_key(item: dict) -> float:
    try:
        created = date_parser.isoparse(item.get("createdAt") or "")
    except (ValueError, TypeError, OverflowError):
        return float("-inf")
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()


def build_channel_items(channels: Iterable[dict]) -> List[dict]:
    """
    Decode each channel label into a view-model item, newest first.
    Channels whose label does not decode are left out.
    """
    items = []
    for channel in channels:
        label = decode_label(channel.get("label") or "")
        if label is None:
            logger.debug(f"[DISCOVERY][SKIP] channel {channel.get('id')}: label not recognised")
            continue

        created_at = channel.get("created") or _now_iso()
        posts = []
        if label.post_id:
            posts.append({"postId": label.post_id, "title": label.title, "createdAt": created_at})
            if label.task_lists:
                task_list_info = f"{len(label.task_lists)} lists"
            else:
                task_list_info = "1 list" if label.task_list_id else "no lists"
            logger.debug(f"[DISCOVERY] Channel {channel.get('id')}: postId={label.post_id}, {task_list_info}, dept={label.department}")
        else:
            logger.debug(f"[DISCOVERY] Channel {channel.get('id')}: no postId in label")

        items.append({
            "channelId": channel.get("id"),
            "installationId": channel.get("installationId"),
            "title": label.title,
            "externalId": label.external_id,
            "userCount": label.user_count,
            "department": label.department,
            "postId": label.post_id,
            "taskListId": label.task_list_id,
            "taskLists": [ref.to_dict() for ref in label.task_lists],
            "createdAt": created_at,
            "posts": posts,
        })

    items.sort(key=_created_sort_key, reverse=True)
    return items


def discover_store_projects(client, space_id: str, store_ids: List[str], page_size: int = 100) -> Dict[str, str]:
    """Map store id -> installation id of the project titled exactly 'Store {storeId}'."""
    wanted = {f"Store {store_id}": store_id for store_id in store_ids}
    project_map = {}
    for installation in iter_installations(client, space_id, page_size):
        store_id = wanted.get(installation_title(installation))
        if store_id is not None:
            project_map[store_id] = installation.get("id")
            logger.debug(f"[DISCOVERY] Found project for store {store_id}: {installation.get('id')}")

    logger.info(f"[DISCOVERY] Discovered projects for {len(project_map)}/{len(wanted)} stores")
    return project_map
