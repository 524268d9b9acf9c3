from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.salepoint.api.v1.api import api_router
from backend.salepoint.core.config import settings
from backend.salepoint.core.database import init_db
from backend.salepoint.core.logging import configure_logging
from backend.salepoint.middleware.request_id import RequestIDMiddleware

configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


app = FastAPI(title="Salepoint POS", lifespan=lifespan)

# ─── CORS: the till UI runs on its own origin ────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

app.add_middleware(RequestIDMiddleware)

app.include_router(api_router)
