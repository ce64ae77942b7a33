from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

from config import get_settings
from database import get_storage
from dtos.chat_request import ChatRequest, ChatResponse
from errors import ServiceError
from schemas import (
    ThreadCreate, ThreadUpdate, ThreadListResponse, ThreadCreated,
    OkResponse, HistoryResponse, ErrorResponse,
)
from services import StorageBackend, ThreadService, RelayClient, create_storage, get_relay_client

settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Backend kind is fixed for the life of the process
    storage = create_storage(get_settings())
    storage.migrate()
    app.state.storage = storage

    logger.info(f"dante-web ready (kind={storage.kind})")
    try:
        yield
    finally:
        storage.close()


app = FastAPI(
    title="Dante Web",
    version="1.0.0",
    lifespan=lifespan
)

origins = settings.allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND, status.HTTP_500_INTERNAL_SERVER_ERROR)
}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    length = request.headers.get("content-length")
    if length and length.isdigit() and int(length) > settings.max_body_bytes:
        return error_response(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "request body too large")
    return await call_next(request)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return error_response(exc.status_code, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"invalid {field}: {first.get('msg')}" if field else f"invalid request: {first.get('msg')}"
    else:
        message = "invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or exc.__class__.__name__)


@app.get("/api/health", responses=ERROR_RESPONSES)
def health_check(storage: StorageBackend = Depends(get_storage)) -> dict:
    """Report which backend is in use and whether it answers."""
    return {"ok": True, **storage.health_check()}


@app.get("/api/threads", response_model=ThreadListResponse, responses=ERROR_RESPONSES)
def list_threads(
    anon_user_id: Optional[str] = Query(default=None, alias="anonUserId"),
    storage: StorageBackend = Depends(get_storage)
) -> ThreadListResponse:
    """List the caller's threads, newest first."""
    threads = ThreadService.list_threads(storage, anon_user_id)
    return ThreadListResponse(threads=threads)


@app.post("/api/threads", response_model=ThreadCreated, responses=ERROR_RESPONSES)
def create_thread(
    thread: ThreadCreate,
    storage: StorageBackend = Depends(get_storage)
) -> ThreadCreated:
    """Create a new conversation thread."""
    thread_id = ThreadService.create_thread(storage, thread.anon_user_id, thread.title)
    return ThreadCreated(thread_id=thread_id)


@app.patch("/api/threads/{thread_id}", response_model=OkResponse, responses=ERROR_RESPONSES)
def rename_thread(
    thread_id: str,
    thread_update: ThreadUpdate,
    storage: StorageBackend = Depends(get_storage)
) -> OkResponse:
    """Rename a thread."""
    ThreadService.rename_thread(storage, thread_update.anon_user_id, thread_id, thread_update.title)
    return OkResponse()


@app.get("/api/history", response_model=HistoryResponse, responses=ERROR_RESPONSES)
def get_history(
    anon_user_id: Optional[str] = Query(default=None, alias="anonUserId"),
    thread_id: Optional[str] = Query(default=None, alias="threadId"),
    storage: StorageBackend = Depends(get_storage)
) -> HistoryResponse:
    """Get a thread's messages, oldest first."""
    messages = ThreadService.get_history(storage, anon_user_id, thread_id)
    return HistoryResponse(messages=messages)


@app.post("/api/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
def chat(
    req: ChatRequest,
    storage: StorageBackend = Depends(get_storage),
    relay: Optional[RelayClient] = Depends(get_relay_client)
) -> ChatResponse:
    """Send a message to the agent and store both sides of the exchange."""
    reply = ThreadService.chat(storage, relay, req.anon_user_id, req.thread_id, req.text)
    return ChatResponse(reply=reply)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
