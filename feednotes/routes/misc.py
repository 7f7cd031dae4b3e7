"""
Miscellaneous routes: status, manual refresh, settings, OPML.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import Response

from .. import __version__
from ..config import get_settings, get_store, get_updater, state
from ..opml import generate_opml, import_opml, parse_opml
from ..schemas import (
    OPMLImportRequest,
    OPMLImportResponse,
    RunSummaryResponse,
    SettingsResponse,
    SettingsUpdateRequest,
    StatusResponse,
)
from ..settings import PluginSettings, SettingsStore
from ..updater import FeedUpdater

logger = logging.getLogger(__name__)

router = APIRouter(tags=["misc"])

INTERVAL_FIELDS = {"update_interval_value", "update_interval_unit"}


# ─────────────────────────────────────────────────────────────
# Status & Refresh
# ─────────────────────────────────────────────────────────────

@router.get("/status")
async def status(
    settings: Annotated[PluginSettings, Depends(get_settings)],
    updater: Annotated[FeedUpdater, Depends(get_updater)],
) -> StatusResponse:
    """Service status and the outcome of the last run."""
    scheduler = state.scheduler
    return StatusResponse(
        status="ok",
        version=__version__,
        state=updater.state.value,
        scheduler_running=bool(scheduler and scheduler.running),
        update_interval_ms=scheduler.interval_ms if scheduler else 0,
        active_feeds=len(settings.active_feeds()),
        last_run=RunSummaryResponse.from_summary(updater.last_summary) if updater.last_summary else None,
        notices=state.notifier.messages if state.notifier else [],
    )


@router.post("/refresh")
async def refresh(
    updater: Annotated[FeedUpdater, Depends(get_updater)],
    background_tasks: BackgroundTasks,
) -> dict:
    """Trigger an update of all feeds (runs in background)."""
    if updater.running:
        return {"success": True, "message": "Refresh already in progress"}

    background_tasks.add_task(updater.run)
    return {"success": True, "message": "Refresh started"}


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────

@router.get("/settings")
async def read_settings(
    settings: Annotated[PluginSettings, Depends(get_settings)],
) -> SettingsResponse:
    """Get global settings."""
    return SettingsResponse.from_settings(settings)


@router.put("/settings")
async def update_settings(
    request: SettingsUpdateRequest,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> SettingsResponse:
    """Update global settings. Changing the interval restarts the timer."""
    changes = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    for key, value in changes.items():
        setattr(settings, key, value)
    store.save(settings)

    if INTERVAL_FIELDS & changes.keys() and state.scheduler:
        await state.scheduler.restart()

    return SettingsResponse.from_settings(settings)


# ─────────────────────────────────────────────────────────────
# OPML Import/Export
# ─────────────────────────────────────────────────────────────

@router.get("/opml")
async def export_opml(
    settings: Annotated[PluginSettings, Depends(get_settings)],
) -> Response:
    """Export active subscriptions as OPML."""
    return Response(
        content=generate_opml(settings),
        media_type="text/x-opml",
        headers={"Content-Disposition": 'attachment; filename="feeds.opml"'},
    )


@router.post("/opml")
async def import_feeds(
    request: OPMLImportRequest,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> OPMLImportResponse:
    """Import subscriptions from OPML content."""
    try:
        doc = parse_opml(request.opml_content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid OPML: {e}")

    if not doc.feeds:
        raise HTTPException(status_code=400, detail="No feeds found in OPML")

    imported, skipped = import_opml(settings, doc)
    store.save(settings)
    logger.info(f"OPML import: {imported} imported, {skipped} skipped")

    return OPMLImportResponse(total=len(doc.feeds), imported=imported, skipped=skipped)
