import time
from typing import List, Optional

from core.errors import FatalOperationError, NoUsersFound, OperationResult, ValidationFailure
from core.logging_config import logger
from core.utils import parse_id_csv
from retrieval.channel_discovery import build_channel_items, discover_channels, discover_store_projects
from services import channels as channel_api
from services.label_codec import decode_label, encode_phase1, encode_phase2
from services.staffbase_client import StaffbaseAPIError
from services.task_csv import parse_task_csv
from services.task_lists import create_multi_store_task_lists, delete_task_list
from services.users import resolve_users


def _new_external_id() -> str:
    return str(int(time.time() * 1000))


def run_verify_users(client, settings, csv_bytes) -> dict:
    """Dry run of the user lookup: which CSV ids resolve to Staffbase users."""
    if csv_bytes is None:
        raise ValidationFailure("CSV file is required.")
    csv_ids = parse_id_csv(csv_bytes)
    if not csv_ids:
        raise ValidationFailure("CSV file is empty.")

    try:
        found_users, not_found_ids = resolve_users(
            client, csv_ids, settings.hidden_attribute_key, settings.page_size
        )
    except StaffbaseAPIError as e:
        raise FatalOperationError(str(e))

    return {
        "foundUsers": found_users,
        "notFoundIds": not_found_ids,
        "totalRequested": len(dict.fromkeys(csv_ids)),
        "totalFound": len(found_users),
        "totalNotFound": len(not_found_ids),
    }


def _validate_create_input(store_csv, title, department, departments: List[str]):
    if store_csv is None:
        raise ValidationFailure("Store CSV file is required.")
    if not title or not title.strip():
        raise ValidationFailure("Post title is required.")
    if not department or not department.strip():
        raise ValidationFailure("Department is required.")
    if departments and department not in departments:
        raise ValidationFailure(f"Unknown department: {department}")


def run_create_pipeline(client, settings, store_csv, title: str, department: str,
                        task_csv=None, departments: Optional[List[str]] = None) -> OperationResult:
    """
    Create a restricted news channel with one post, plus optional per-store task lists.

      1. Validate input and parse both CSVs.
      2. Resolve store ids to users (none resolved -> NoUsersFound).
      3. Create the channel with its phase-1 label.       (fatal)
      4. Create the post.                                 (fatal)
      5. Create task lists in matching store projects.    (degraded on failure)
      6. Rewrite the label with post / task-list data.    (degraded on failure)
    """
    _validate_create_input(store_csv, title, department, departments or [])
    title = title.strip()
    department = department.strip()

    csv_ids = parse_id_csv(store_csv)
    if not csv_ids:
        raise ValidationFailure("Store CSV file is empty.")

    tasks = []
    if task_csv is not None:
        tasks = parse_task_csv(task_csv)
        if not tasks:
            logger.warning("[CREATE] Task CSV is empty or has an invalid format, continuing without tasks")
    else:
        logger.info("[CREATE] No task CSV provided, creating post without tasks")

    try:
        found_users, not_found_ids = resolve_users(
            client, csv_ids, settings.hidden_attribute_key, settings.page_size
        )
    except StaffbaseAPIError as e:
        raise FatalOperationError(f"User lookup failed: {e}")

    if not found_users:
        raise NoUsersFound(f"No users found with {settings.hidden_attribute_key} matching CSV IDs.")

    user_ids = [u["id"] for u in found_users]
    external_id = _new_external_id()

    try:
        channel = channel_api.create_news_channel(
            client, settings.space_id, encode_phase1(external_id, len(user_ids), title), user_ids
        )
    except StaffbaseAPIError as e:
        raise FatalOperationError(f"Channel creation failed: {e}")
    channel_id = channel["channelId"]

    try:
        post = channel_api.create_news_post(client, channel_id, title, department)
    except StaffbaseAPIError as e:
        raise FatalOperationError(f"Post creation failed: {e}")
    post_id = post.get("id")

    result = OperationResult(value={})
    if not_found_ids:
        result.warn(f"{len(not_found_ids)} CSV id(s) did not match a user")

    task_list_results = {}
    task_lists = []
    if tasks:
        try:
            project_map = discover_store_projects(client, settings.space_id, csv_ids, settings.page_size)
            created = create_multi_store_task_lists(client, csv_ids, project_map, title, tasks)
            task_list_results = created["results"]
            task_lists = created["taskLists"]
        except StaffbaseAPIError as e:
            logger.error(f"[CREATE] Task list creation failed: {e}")
            result.warn(f"Task lists could not be created: {e}")
        for store_id, outcome in task_list_results.items():
            if outcome.get("error"):
                result.warn(f"Store {store_id}: {outcome['error']}")

    label = encode_phase2(external_id, len(user_ids), post_id, task_lists, department, title)
    if not channel_api.rename_channel(client, channel_id, label):
        result.warn("Channel label could not be updated with post and task list data")

    result.value = {
        "success": True,
        "channelId": channel_id,
        "postId": post_id,
        "taskListResults": task_list_results,
        "userCount": len(user_ids),
        "postTitle": title,
        "department": department,
        "externalId": external_id,
        "taskCount": len(tasks),
        "tasksCreatedCount": len(task_lists),
        "notFoundIds": not_found_ids,
        "warnings": result.warnings,
    }
    logger.info(f"[CREATE] Channel {channel_id} created (externalId={external_id}, degraded={result.degraded})")
    return result


def run_delete_pipeline(client, settings, channel_id: str) -> OperationResult:
    """
    Delete a managed channel and the task lists recorded in its label.

    Task lists are removed first, each independently and best-effort. The channel
    delete itself is the primary effect and its failure is raised.
    """
    if not channel_id or not channel_id.strip():
        raise ValidationFailure("Channel ID is required.")

    result = OperationResult(value={})
    deleted_task_lists = 0

    label = None
    try:
        installation = channel_api.get_installation(client, channel_id)
        label_text = channel_api.installation_title(installation)
        logger.debug(f"[DELETE] Channel label: {label_text}")
        label = decode_label(label_text)
    except StaffbaseAPIError as e:
        logger.warning(f"[DELETE] Could not fetch channel metadata: {e}")
        result.warn(f"Channel metadata unavailable, task lists not removed: {e}")

    if label is not None:
        if label.task_lists:
            logger.info(f"[DELETE] Found {len(label.task_lists)} task lists to delete")
            for ref in label.task_lists:
                if delete_task_list(client, ref.list_id, ref.installation_id):
                    deleted_task_lists += 1
                else:
                    result.warn(f"Task list {ref.list_id} could not be deleted")
        elif label.task_list_id:
            logger.info(f"[DELETE] Deleting task list (legacy format): {label.task_list_id}")
            if delete_task_list(client, label.task_list_id, settings.tasks_installation_id):
                deleted_task_lists += 1
            else:
                result.warn(f"Task list {label.task_list_id} could not be deleted")

    try:
        channel_api.delete_channel(client, channel_id)
    except StaffbaseAPIError as e:
        raise FatalOperationError(f"Channel deletion failed: {e}")

    result.value = {
        "success": True,
        "message": f"Channel {channel_id} and all associated task lists deleted successfully",
        "deletedTaskLists": deleted_task_lists,
        "warnings": result.warnings,
    }
    return result


def run_list_pipeline(client, settings) -> List[dict]:
    """All managed channels as view-model items, newest first."""
    try:
        channels = discover_channels(client, settings.space_id, settings.page_size)
    except StaffbaseAPIError as e:
        raise FatalOperationError(f"Channel discovery failed: {e}")
    items = build_channel_items(channels)
    logger.info(f"[ITEMS] Returning {len(items)} items (sorted newest first)")
    return items
