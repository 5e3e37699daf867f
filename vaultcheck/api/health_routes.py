"""API routes for the healthcheck report.

Endpoints:
  GET /healthcheck/status.json      — liveness, body "OK"
  GET /healthcheck.json             — full report
  GET /healthcheck/{category}.json  — a single category run in isolation
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from vaultcheck.health.healthchecks import CATEGORY_KEYS

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["healthcheck"])


def _envelope(request: Request, body: Any, message: str = "OK") -> dict[str, Any]:
    return {
        "header": {
            "id": str(uuid.uuid4()),
            "status": "success",
            "servertime": int(time.time()),
            "action": request.url.path,
            "message": message,
            "code": 200,
        },
        "body": body,
    }


@health_router.get("/healthcheck/status.json")
def status(request: Request) -> dict[str, Any]:
    """Cheap liveness answer, polled back by the core reachability check."""
    return _envelope(request, "OK")


@health_router.get("/healthcheck.json")
async def full_report(request: Request) -> dict[str, Any]:
    """Run every healthcheck and return the report."""
    healthchecks = request.app.state.healthchecks
    report = await run_in_threadpool(healthchecks.run_all)
    return _envelope(request, report.to_dict())


@health_router.get("/healthcheck/{category}.json")
async def category_report(category: str, request: Request) -> dict[str, Any]:
    """Run one category in isolation."""
    if category not in CATEGORY_KEYS:
        raise HTTPException(status_code=404, detail=f"Unknown healthcheck category: {category}")
    healthchecks = request.app.state.healthchecks
    report = await run_in_threadpool(healthchecks.run_category, category)
    return _envelope(request, report.to_dict())
