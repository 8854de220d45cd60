import html
import time
from datetime import datetime, timezone
from typing import List, Optional

from dateutil import parser as date_parser

from core.logging_config import logger
from services.staffbase_client import StaffbaseAPIError

NEWS_PLUGIN_ID = "news"

STATUS_PUBLISHED = "published"
STATUS_SCHEDULED = "scheduled"
STATUS_DRAFT = "draft"


def _localized_title(label: str) -> dict:
    return {
        "de_DE": {"title": label},
        "en_US": {"title": label},
    }


def installation_title(installation: dict) -> str:
    localization = ((installation or {}).get("config") or {}).get("localization") or {}
    return (localization.get("en_US") or {}).get("title") or ""


def channel_id_of(installation: dict) -> Optional[str]:
    """News channel id: nested plugin instance id, then channelId, then the installation id."""
    plugin_instance = installation.get("pluginInstance") or {}
    return plugin_instance.get("id") or installation.get("channelId") or installation.get("id")


def create_news_channel(client, space_id: str, label: str, user_ids: List[str]) -> dict:
    """Create a news installation visible only to `user_ids`. Returns the response plus `channelId`."""
    payload = {
        "pluginID": NEWS_PLUGIN_ID,
        "config": {"localization": _localized_title(label)},
        "accessorIDs": list(user_ids),
        "contributorIDs": [],
        "contentType": "article",
        "published": "now",
        "notificationChannelsAllowed": [],
        "notificationChannelsDefault": [],
    }
    response = client.request("POST", f"/spaces/{space_id}/installations", payload)

    channel_id = response.get("id") or (response.get("pluginInstance") or {}).get("id")
    if not channel_id:
        raise StaffbaseAPIError(200, "Channel creation succeeded but no ID in response")

    logger.info(f"[CHANNEL] Created channel {channel_id} for {len(user_ids)} users")
    return {**response, "channelId": channel_id}


def rename_channel(client, channel_id: str, label: str) -> bool:
    """Rewrite the channel label. Best-effort: failures are logged and reported as False."""
    logger.info(f"[CHANNEL] Renaming channel {channel_id} to: {label}")
    try:
        client.request("POST", f"/installations/{channel_id}", {
            "config": {"localization": _localized_title(label)},
        })
    except StaffbaseAPIError as e:
        logger.warning(f"[CHANNEL] Failed to rename channel {channel_id}: {e}")
        return False
    return True


def get_installation(client, installation_id: str) -> dict:
    return client.request("GET", f"/installations/{installation_id}")


def delete_channel(client, channel_id: str) -> None:
    client.request("DELETE", f"/installations/{channel_id}")
    logger.info(f"[CHANNEL] Deleted channel {channel_id}")


def create_news_post(client, channel_id: str, title: str, department: str) -> dict:
    """
    Create the article in a news channel. Tries the channel posts endpoint first
    and falls back to the installation posts endpoint.
    """
    payload = {
        "externalID": f"post-{int(time.time() * 1000)}",
        "contents": {
            "en_US": {
                "title": title,
                "content": f"<p>{html.escape(title)}</p>",
                "teaser": department,
            }
        },
    }
    try:
        return client.request("POST", f"/channels/{channel_id}/posts", payload)
    except StaffbaseAPIError as first_err:
        logger.info(f"[POST] First attempt failed for {channel_id}, trying installation endpoint")
        try:
            return client.request("POST", f"/installations/{channel_id}/posts", payload)
        except StaffbaseAPIError as second_err:
            logger.error(f"[POST] Both post endpoints failed: {first_err} | {second_err}")
            raise first_err


def _format_planned(planned: datetime) -> str:
    return planned.strftime("%b %d, %Y, %H:%M")


def post_status_from(post: dict, now: Optional[datetime] = None) -> dict:
    """
    Derive the publication status of a post:
      published  - a publish timestamp exists
      scheduled  - a planned timestamp lies in the future and nothing was published
      draft      - anything else
    """
    now = now or datetime.now(timezone.utc)
    published = post.get("published")
    planned_raw = post.get("planned")

    planned_future = None
    if planned_raw:
        try:
            planned_dt = date_parser.isoparse(planned_raw)
            if planned_dt.tzinfo is None:
                planned_dt = planned_dt.replace(tzinfo=timezone.utc)
            if planned_dt > now:
                planned_future = planned_dt
        except (ValueError, TypeError, OverflowError):
            logger.debug(f"[POST] Ignoring unparseable planned date {planned_raw!r}")

    if published:
        return {"status": STATUS_PUBLISHED, "published": published, "planned": None, "plannedDateFormatted": None}
    if planned_future is not None:
        return {
            "status": STATUS_SCHEDULED,
            "published": None,
            "planned": planned_raw,
            "plannedDateFormatted": _format_planned(planned_future),
        }
    return {"status": STATUS_DRAFT, "published": None, "planned": None, "plannedDateFormatted": None}


def get_post_status(client, post_id: str, now: Optional[datetime] = None) -> dict:
    """Status of a post; 'draft' whenever the lookup fails."""
    try:
        post = client.request("GET", f"/posts/{post_id}")
    except Exception as e:
        logger.warning(f"[POST] Failed to fetch post status for {post_id}: {e}")
        result = post_status_from({}, now)
        result["error"] = str(e)
        return result
    return post_status_from(post or {}, now)
