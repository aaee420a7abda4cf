# file: backend/api/index.py
"""
FastAPI Backend — Vercel Serverless Function.

Stateless: every request loads the hierarchy snapshot from the database.
Deployed as a single Vercel Python serverless function; the hierarchy API
is mounted under /api.
"""

from __future__ import annotations

import os
import sys

# Add repo root for kernel / runtime imports
_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, _ROOT)

from fastapi import FastAPI

from backend.config import load_settings
from backend.main import API_VERSION, create_app

settings = load_settings()

app = FastAPI(
    title="OrgFlow Hierarchy API",
    version=API_VERSION,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)


@app.get("/")
def read_root():
    return {"status": "ok", "message": "OrgFlow backend is running. Access endpoints under /api/"}


app.mount("/api", create_app(settings))
