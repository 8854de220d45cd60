import json
import urllib.error
import urllib.request
from typing import Optional

from core.logging_config import logger
from core.request_log import RequestLog


class StaffbaseAPIError(RuntimeError):
    def __init__(self, status: int, body: str = ""):
        super().__init__(f"Staffbase API {status}: {body}")
        self.status = status
        self.body = body


class StaffbaseClient:
    """
    Thin JSON helper over the Staffbase REST API.
    Every call is attempted once; non-2xx responses raise StaffbaseAPIError.
    """

    def __init__(self, base_url: str, token: str, timeout: float = 60.0,
                 request_log: Optional[RequestLog] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.request_log = request_log if request_log is not None else RequestLog()

    def _headers(self) -> dict:
        return {
            "Authorization": self.token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def request(self, method: str, path: str, body=None):
        url = f"{self.base_url}{path}"
        headers = self._headers()

        logger.debug(f"[API] {method} {url}")
        if body is not None:
            logger.debug(f"[API] Body: {json.dumps(body, ensure_ascii=False)}")

        self.request_log.record(method, url, headers, body, path=path)

        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(url, data=data, headers=headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = resp.status
                raw = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            text = e.read().decode("utf-8", errors="replace")
            logger.warning(f"[API] Error {e.code}: {text[:2000]}")
            raise StaffbaseAPIError(e.code, text)
        except urllib.error.URLError as e:
            logger.error(f"[API] {method} {url} failed: {e.reason}")
            raise StaffbaseAPIError(0, str(e.reason))

        if status == 204 or not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except ValueError:
            raise StaffbaseAPIError(status, f"invalid JSON response: {raw[:500]}")


def iter_paged(client, path: str, page_size: int = 100):
    """
    Yield one page (`data` list) at a time from a limit/offset collection.
    Stops on an empty page or a page shorter than `page_size`.
    """
    sep = "&" if "?" in path else "?"
    offset = 0
    while True:
        result = client.request("GET", f"{path}{sep}limit={page_size}&offset={offset}")
        if isinstance(result, dict):
            rows = result.get("data") or []
        elif isinstance(result, list):
            rows = result
        else:
            rows = []
        if not rows:
            break
        yield rows
        if len(rows) < page_size:
            break
        offset += page_size
