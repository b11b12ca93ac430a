# internhub/main.py
from dotenv import load_dotenv

# 1) load .env before any module reads the environment
load_dotenv()

import asyncio
import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from internhub.api.analytics import router as analytics_router
from internhub.api.deps import build_store
from internhub.api.notifications import router as notifications_router
from internhub.api.websocket import router as ws_router
from internhub.core import config
from internhub.core.exceptions import AppException, app_exception_handler, http_exception_handler
from internhub.infra.servicebus_consumer import consume_notifications
from internhub.services.query_cache import QueryCache

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="InternHub Notification Service")

# 2) CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)

# 3) REST routes
app.include_router(notifications_router)
app.include_router(analytics_router)
# 4) WebSocket route
app.include_router(ws_router)


@app.on_event("startup")
async def startup_event():
    # 5) one store (and its change feed) and one query cache per process
    app.state.store = build_store()
    app.state.cache = QueryCache()
    if hasattr(app.state.store, "ensure_table"):
        await app.state.store.ensure_table()
    # 6) Service Bus consumer in the background
    app.state.consumer = asyncio.create_task(consume_notifications(app.state.store))
    logger.info("Notification service started (%s backend)", config.ROW_STORE_BACKEND)


@app.on_event("shutdown")
async def shutdown_event():
    consumer = getattr(app.state, "consumer", None)
    if consumer is not None:
        consumer.cancel()
    store = getattr(app.state, "store", None)
    if store is not None:
        await store.close()
