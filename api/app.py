from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import Settings, load_departments, load_settings
from core.errors import ConfigError, OperationError
from core.logging_config import logger
from core.request_log import RequestLog
from pipeline.channel_pipeline import (
    run_create_pipeline,
    run_delete_pipeline,
    run_list_pipeline,
    run_verify_users,
)
from services.channels import get_post_status
from services.staffbase_client import StaffbaseClient

app = FastAPI(title="Store Channel Manager")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Dependencies ===
@lru_cache()
def get_settings() -> Settings:
    return load_settings()


@lru_cache()
def get_client() -> StaffbaseClient:
    settings = get_settings()
    return StaffbaseClient(
        settings.base_url,
        settings.token,
        timeout=settings.timeout,
        request_log=RequestLog(maxlen=settings.request_log_size),
    )


def get_departments(settings: Settings = Depends(get_settings)) -> list:
    return load_departments(settings.departments_file)


# === Error mapping ===
@app.exception_handler(OperationError)
async def operation_error_handler(request: Request, exc: OperationError):
    if exc.status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError):
    logger.error(f"[CONFIG] {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def _read_upload(upload: Optional[UploadFile]) -> Optional[bytes]:
    if upload is None or not upload.filename:
        return None
    return await upload.read()


# === Channels ===
@app.get("/api/items")
async def list_items(settings: Settings = Depends(get_settings), client=Depends(get_client)):
    """All channels created by this tool, newest first."""
    return {"items": run_list_pipeline(client, settings)}


@app.post("/api/verify-users")
async def verify_users(
    csv: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
    client=Depends(get_client),
):
    return run_verify_users(client, settings, await _read_upload(csv))


@app.post("/api/create")
async def create(
    csv: Optional[UploadFile] = File(None),
    taskCsv: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    department: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
    client=Depends(get_client),
    departments: list = Depends(get_departments),
):
    """
    Accepts the store CSV (one id per line), an optional task CSV, a post title
    and a department; creates the channel, post and task lists.
    """
    result = run_create_pipeline(
        client,
        settings,
        await _read_upload(csv),
        title,
        department,
        task_csv=await _read_upload(taskCsv),
        departments=departments,
    )
    return result.value


@app.delete("/api/delete/{channel_id}")
async def delete(channel_id: str, settings: Settings = Depends(get_settings), client=Depends(get_client)):
    return run_delete_pipeline(client, settings, channel_id).value


@app.get("/api/post-status/{post_id}")
async def post_status(post_id: str, client=Depends(get_client)):
    return get_post_status(client, post_id)


@app.get("/api/departments")
async def departments_list(departments: list = Depends(get_departments)):
    return {"departments": departments}


# === Debug ===
def _debug_entry(client, kind: str, empty_message: str, notes: str):
    entry = client.request_log.last(kind)
    if not entry:
        return {"message": empty_message}
    return {**entry, "notes": notes}


@app.get("/api/debug-last-request")
async def debug_last_request(client=Depends(get_client)):
    return _debug_entry(
        client, "any",
        "No API requests recorded yet. Create a test post to capture a request.",
        "Last Staffbase request (Authorization redacted).",
    )


@app.get("/api/debug-task-list-request")
async def debug_task_list_request(client=Depends(get_client)):
    return _debug_entry(
        client, "task_list",
        "No task list requests recorded yet. Create a test post to capture a request.",
        "Last TASK LIST creation request.",
    )


@app.get("/api/debug-task-request")
async def debug_task_request(client=Depends(get_client)):
    return _debug_entry(
        client, "task",
        "No task creation requests recorded yet.",
        "Last TASK creation request (inside a task list).",
    )


@app.get("/api/debug-requests")
async def debug_requests(client=Depends(get_client)):
    return {"requests": client.request_log.entries()}


# === Health Check Endpoint ===
@app.get("/health")
async def health_check():
    return JSONResponse(content={"status": "ok"})


if __name__ == "__main__":
    import uvicorn

    port = get_settings().port
    logger.info(f"Server running at http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port)
