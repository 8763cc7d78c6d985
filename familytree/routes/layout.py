"""Tree layout and the manual per-unit offsets that dragging produces."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from ..layout import clamp_offset, layout_family
from ..models import OffsetUpdate
from ..store import get_store

router = APIRouter(tags=["layout"])


@router.get("/layout")
def get_layout() -> dict[str, Any]:
    """Return node positions, connector lines and generation labels for the stored tree.

    Stored manual offsets are applied; a unit whose key changed (e.g. after
    re-pairing) simply loses its offset.
    """

    data = get_store().load()
    return layout_family(data, offsets=data.get("unitOffsets")).to_dict()


@router.get("/offsets")
def get_offsets() -> dict[str, Any]:
    return get_store().load().get("unitOffsets") or {}


@router.put("/offsets/{unit_key}")
def set_offset(unit_key: str, body: OffsetUpdate) -> dict[str, Any]:
    dx = clamp_offset(body.dx)
    if dx is None:
        raise HTTPException(status_code=400, detail="dx must be a finite number")

    with get_store().edit() as data:
        offsets = data.get("unitOffsets")
        if not isinstance(offsets, dict):
            offsets = {}
        offsets[unit_key] = {"dx": dx}
        data["unitOffsets"] = offsets
    return {"unitKey": unit_key, "dx": dx}


@router.delete("/offsets")
def reset_offsets() -> dict[str, Any]:
    with get_store().edit() as data:
        data["unitOffsets"] = {}
    return {"ok": True}
