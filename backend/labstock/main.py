# backend/labstock/main.py
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import SessionLocal, create_tables
from .apps.inventory.router import router as inventory_router
from .apps.inventory.services import InventoryStore
from .apps.inventory.storage import SqlStateRepository


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    # Loaded once per process; every mutation writes straight back.
    app.state.store = InventoryStore.open(SqlStateRepository(SessionLocal))
    yield


app = FastAPI(title="Lab Stock API", version="1.0.0", lifespan=lifespan)
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(inventory_router)
