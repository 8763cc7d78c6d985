"""Whole-document routes: read, settings, export and import."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException
from fastapi.responses import JSONResponse

from ..models import SettingsUpdate
from ..store import get_store

log = logging.getLogger(__name__)

router = APIRouter(tags=["family"])

EXPORT_FILENAME = "family-tree-export.json"


@router.get("/family")
def get_family() -> dict[str, Any]:
    return get_store().load()


@router.put("/settings")
def update_settings(body: SettingsUpdate) -> dict[str, Any]:
    with get_store().edit() as data:
        data["settings"] = {**data["settings"], **body.model_dump(exclude_unset=True)}
        settings = data["settings"]
    return settings


@router.get("/export")
def export_family() -> JSONResponse:
    """Download the whole document as a JSON attachment."""

    return JSONResponse(
        content=get_store().load(),
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )


@router.post("/import")
def import_family(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Replace the stored document with an exported one.

    The previous document is kept as a backup like any other save.
    """

    if not isinstance(payload.get("members"), list) or not isinstance(payload.get("relationships"), list):
        raise HTTPException(status_code=400, detail="Invalid data format")

    get_store().save(payload)
    log.info(
        "Imported family document (%d members, %d relationships)",
        len(payload["members"]),
        len(payload["relationships"]),
    )
    return {"ok": True}
