# main.py
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from agent import Agent
from backend import GeminiBackend
from errors import AskError
from logger import configure_logging
from middleware import AccessLogMiddleware, SecureHeadersMiddleware
from models import AskRequest, ReturnStatus
from settings import Settings, get_settings

logger = logging.getLogger("wastewise")

DISCONNECT_POLL_INTERVAL = 0.5
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    pass


async def run_until_disconnect(request: Request, coro):
    """Await ``coro``, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                # let the turn unwind (and release its session lock) before answering
                await asyncio.wait({task})
                raise ClientDisconnected()
    except asyncio.CancelledError:
        task.cancel()
        raise


def get_agent(request: Request) -> Agent:
    return request.app.state.agent


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ReturnStatus(error=message).to_json())


def create_app(backend=None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    if backend is None:
        configure_logging(settings.LOG_LEVEL, settings.DO_DEBUG)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.agent is None:
            app.state.agent = Agent(GeminiBackend.from_settings(settings))
        logger.info("agent ready", extra={"model": getattr(app.state.agent.backend, "model_name", None)})
        yield
        await app.state.agent.close()
        logger.info("agent closed")

    app = FastAPI(title="WasteWise API", version="1.0.0", lifespan=lifespan)
    app.state.agent = Agent(backend) if backend is not None else None

    # --- Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500, compresslevel=5)
    # pure ASGI only: BaseHTTPMiddleware hides http.disconnect from the endpoint
    app.add_middleware(SecureHeadersMiddleware)
    if settings.DO_DEBUG:
        app.add_middleware(AccessLogMiddleware)

    # --- Error handlers ---
    @app.exception_handler(AskError)
    async def on_ask_error(request: Request, exc: AskError):
        logger.error(exc.message, extra={"error_type": type(exc).__name__, **exc.extra})
        return error_response(exc.http_status, exc.message)

    @app.exception_handler(RequestValidationError)
    async def on_invalid_input(request: Request, exc: RequestValidationError):
        logger.error("failed to parse input", extra={"error": str(exc.errors())})
        return error_response(400, f"invalid input: {exc.errors()}")

    # --- Routes ---
    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.post("/ask")
    async def ask(req: AskRequest, request: Request, agent: Agent = Depends(get_agent)):
        try:
            resp = await run_until_disconnect(request, agent.handle(req))
        except ClientDisconnected:
            logger.warning("client closed request", extra={"session": req.session_id or None})
            return error_response(CLIENT_CLOSED_REQUEST, "client closed request")
        return ReturnStatus(payload=resp).to_json()

    # static client last so it never shadows the API routes
    if os.path.isdir(settings.STATIC_DIR):
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=get_settings().PORT,
        log_config=None,
        proxy_headers=True,
        timeout_graceful_shutdown=5,
    )
