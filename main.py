import uvicorn
import time
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.agents.deploy_monitor import DeployStatusMonitor
from app.api.deploy_status import router as deploy_status_router
from app.api.notifications import router as notifications_router
from app.core.config import ENABLE_DEPLOY_MONITOR, LOCAL_STORE_PATH
from app.services.cache_service import DeployRunCache
from app.services.local_store import LocalStore
from app.services.notification_center import NotificationCenter
from app.services.status_provider import build_status_provider
from app.utils.logging_config import setup_logging

# Initialize enhanced logging
setup_logging(level=logging.INFO)
logger = logging.getLogger("main")


# ---------------------------------------------------------------------------
# Logging Middleware
# ---------------------------------------------------------------------------
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_host = request.client.host if request.client else "unknown"
        logger.debug(f"Incoming: {request.method} {request.url.path} from {client_host}")

        try:
            response = await call_next(request)
            process_time = (time.time() - start_time) * 1000
            logger.info(
                f"{request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Time: {process_time:.2f}ms"
            )
            return response
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path} - Error: {str(e)}")
            raise e


def create_app(
    monitor: Optional[DeployStatusMonitor] = None,
    notifications: Optional[NotificationCenter] = None,
    start_monitor: bool = ENABLE_DEPLOY_MONITOR,
) -> FastAPI:
    """Wire the store, notification center and monitor into a FastAPI app."""
    if monitor is None or notifications is None:
        store = LocalStore(LOCAL_STORE_PATH or None)
        notifications = notifications or NotificationCenter(store)
        monitor = monitor or DeployStatusMonitor(
            provider=build_status_provider(),
            cache=DeployRunCache(store),
            notify=notifications.add_notification,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_monitor:
            monitor.initialize()
            logger.info("Deploy status monitor started")
        yield
        if start_monitor:
            await monitor.shutdown()

    app = FastAPI(title="Deploy Status Monitor API", lifespan=lifespan)
    app.state.monitor = monitor
    app.state.notifications = notifications

    app.add_middleware(LoggingMiddleware)

    # -----------------------------------------------------------------------
    # CORS: the admin dashboard (port 3000) embeds the badge and panel fragments
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:8000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    # Register routers
    app.include_router(deploy_status_router)
    app.include_router(notifications_router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
