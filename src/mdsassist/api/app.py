# src/mdsassist/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and installs CORS for the field web client.
Business logic lives in `mdsassist.api.routes` and `mdsassist.reporting`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from mdsassist import __version__
from mdsassist.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="MDS Assist API", version=__version__)

# CORS (dev-friendly): allow local frontends to call this API.
# Configure via env:
# - MDSASSIST_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
# - MDSASSIST_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("MDSASSIST_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("MDSASSIST_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
)
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)
