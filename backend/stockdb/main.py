# backend/stockdb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .apps.accounts.router import auth_router as accounts_auth_router
from .apps.accounts.router import router as accounts_admin_router
from .apps.audit.router import router as audit_router
from .apps.inventory.router import router as inventory_router
from .apps.library.router import router as library_router
from .apps.reconciliation.router import router as reconciliation_router

logging.getLogger("stockdb").setLevel(os.getenv("LOG_LEVEL", "info").upper())


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
        "http://localhost:3000",
    ]


app = FastAPI(title="Stock Back-Office API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Stock back-office backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(accounts_auth_router)
app.include_router(accounts_admin_router)
app.include_router(audit_router)
app.include_router(library_router)
app.include_router(inventory_router)
app.include_router(reconciliation_router)
