from typing import Dict, List, Optional

from core.logging_config import logger
from services.label_codec import TaskListRef
from services.staffbase_client import StaffbaseAPIError

TASK_LIST_COLOR = "#007bff"


def _task_payload(task, list_id: str) -> dict:
    payload = {"title": task.title.strip(), "taskListId": list_id}
    if task.description and task.description.strip():
        payload["description"] = task.description.strip()
    if task.due_date:
        payload["dueDate"] = task.due_date
        payload["startDate"] = task.start_date
    payload["status"] = "OPEN"
    payload["assigneeIds"] = []
    payload["groupIds"] = []
    return payload


def create_task_list_with_tasks(client, installation_id: str, list_name: str, tasks: list) -> dict:
    """
    Create a task list in a store project and fill it with tasks.

    Creating the list itself must succeed (StaffbaseAPIError propagates).
    Individual tasks are best-effort; a 403 usually means the token lacks the
    create_task permission. Returns {listId, taskCount}.
    """
    list_result = client.request("POST", f"/tasks/{installation_id}/lists", {
        "name": list_name,
        "color": TASK_LIST_COLOR,
    })
    list_id = list_result.get("id")
    logger.info(f"[TASKS] Created task list in project {installation_id}: {list_name} (ID: {list_id})")

    try:
        groups = client.request("GET", f"/tasks/{installation_id}/groups")
        group_count = len(groups) if isinstance(groups, list) else len((groups or {}).get("data") or [])
        logger.debug(f"[TASKS] Installation {installation_id} has {group_count} groups, task APIs reachable")
    except StaffbaseAPIError as e:
        logger.warning(f"[TASKS] Could not retrieve groups for {installation_id}: {e}")

    created_count = 0
    for task in tasks:
        try:
            result = client.request("POST", f"/tasks/{installation_id}/task", _task_payload(task, list_id))
            logger.debug(f"[TASKS]   Created task: {task.title} (ID: {result.get('id')})")
            created_count += 1
        except StaffbaseAPIError as e:
            if e.status == 403:
                logger.warning(f"[TASKS]   Task \"{task.title}\" rejected: insufficient permissions (403)")
            else:
                logger.warning(f"[TASKS]   Failed to create task {task.title}: {e}")

    if tasks and created_count == 0:
        logger.warning(
            f"[TASKS] No tasks could be created in list {list_id}. "
            "The API token may lack the 'create_task' permission; the list exists but is empty."
        )

    logger.info(f"[TASKS] Created {created_count} tasks out of {len(tasks)}")
    return {"listId": list_id, "taskCount": created_count}


def create_multi_store_task_lists(client, store_ids: List[str], project_map: Dict[str, str],
                                  list_name: str, tasks: list) -> dict:
    """
    Create one task list per store, sequentially.

    `project_map` maps store id -> project installation id. Stores without a
    project, or whose list creation fails, get an {"error": ...} entry.
    Returns {"results": {storeId: ...}, "taskLists": [TaskListRef, ...]}.
    """
    results = {}
    task_lists = []

    for store_id in store_ids:
        installation_id = project_map.get(store_id)
        if not installation_id:
            logger.warning(f"[TASKS] No project found for store {store_id}, skipping task list creation")
            results[store_id] = {"error": "Project not found"}
            continue

        try:
            created = create_task_list_with_tasks(client, installation_id, list_name, tasks)
        except StaffbaseAPIError as e:
            logger.error(f"[TASKS] Failed to create task list for store {store_id}: {e}")
            results[store_id] = {"error": str(e)}
            continue

        results[store_id] = {"success": True, "installationId": installation_id, **created}
        if created.get("listId"):
            task_lists.append(TaskListRef(
                store_id=store_id,
                installation_id=installation_id,
                list_id=str(created["listId"]),
            ))

    return {"results": results, "taskLists": task_lists}


def delete_task_list(client, list_id: str, installation_id: Optional[str]) -> bool:
    """Best-effort delete; returns False instead of raising."""
    if not installation_id:
        logger.warning(f"[TASKS] No installation known for task list {list_id}, cannot delete it")
        return False
    try:
        client.request("DELETE", f"/tasks/{installation_id}/lists/{list_id}")
    except StaffbaseAPIError as e:
        logger.warning(f"[TASKS] Failed to delete task list {list_id}: {e}")
        return False
    logger.info(f"[TASKS] Deleted task list: {list_id}")
    return True
