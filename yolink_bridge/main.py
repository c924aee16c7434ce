import asyncio, logging, os
from contextlib import asynccontextmanager
from typing import Optional
import httpx
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from .api import router as api_router
from .auth import TokenCache
from .errors import BridgeError, ValidationError
from .realtime import Broadcaster
from .settings import Settings, settings
from .state import DeviceStateCache, UpdateFeed
from .telemetry import TelemetrySubscriber
from .yolink_client import YoLinkClient

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

log = logging.getLogger("api")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

def log_task_failure(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("Background task %s stopped: %r", task.get_name(), exc, exc_info=exc)

def create_app(config: Settings = settings, client: Optional[YoLinkClient] = None) -> FastAPI:
    if client is None:
        http = httpx.AsyncClient(timeout=config.HTTP_TIMEOUT)
        client = YoLinkClient(config, TokenCache(config, http), http)

    cache = DeviceStateCache()
    feed = UpdateFeed(config.FEED_SIZE)
    broadcaster = Broadcaster(feed, config.SESSION_QUEUE_SIZE)
    subscriber = TelemetrySubscriber(config, client, cache, feed)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        tasks = [asyncio.create_task(broadcaster.run(), name="broadcaster")]
        if config.TELEMETRY_ENABLED:
            tasks.append(asyncio.create_task(subscriber.run(), name="telemetry"))
        else:
            log.info("Telemetry subscriber disabled")
        for t in tasks:
            t.add_done_callback(log_task_failure)
        try:
            yield
        finally:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await client.aclose()

    app = FastAPI(title="YoLink Bridge", version="0.1.0", lifespan=lifespan)
    app.state.settings = config
    app.state.client = client
    app.state.cache = cache
    app.state.broadcaster = broadcaster
    app.state.subscriber = subscriber

    app.include_router(api_router)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["*"])

    # outermost: every OPTIONS request, preflight or not, is an empty 200
    @app.middleware("http")
    async def preflight(request: Request, call_next):
        if request.method != "OPTIONS":
            return await call_next(request)
        headers = dict(CORS_HEADERS)
        headers["Access-Control-Allow-Headers"] = request.headers.get("access-control-request-headers", "Content-Type")
        return Response(status_code=200, headers=headers)

    @app.exception_handler(ValidationError)
    async def bad_request(request: Request, exc: ValidationError):
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(BridgeError)
    async def upstream_failure(request: Request, exc: BridgeError):
        log.error("Error handling %s: %s", request.url.path, exc)
        return PlainTextResponse(str(exc), status_code=500)

    if os.path.isdir(config.STATIC_DIR):
        app.mount("/", StaticFiles(directory=config.STATIC_DIR, html=True), name="static")
    else:
        log.info("Static directory %s not found; not serving assets", config.STATIC_DIR)

    return app

app = create_app()

def run():
    log.info("Server starting on port %s...", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
