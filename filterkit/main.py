from __future__ import annotations
from dotenv import load_dotenv

load_dotenv()

import os, logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import REG, router as filters_router
from .registry.registry import FIELDS_PATH

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
log = logging.getLogger("filters")

app = FastAPI(title="Filterkit Filter Service", version="1.0.0")

app.include_router(filters_router)

origins_raw = os.getenv("CORS_ALLOW_ORIGINS", "")
origins = [o.strip() for o in origins_raw.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.on_event("startup")
def _startup():
    if FIELDS_PATH.exists():
        REG.load_fields(FIELDS_PATH)
    else:
        # unknown fields fall back to string validation
        log.warning("Field registry file not found: %s", FIELDS_PATH)


@app.get("/healthz")
def health():
    return {"ok": True, "fields": len(REG)}
