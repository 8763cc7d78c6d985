from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException

from ..models import MemberCreate, MemberUpdate
from ..store import get_store

router = APIRouter(tags=["members"])


@router.post("/members")
def create_member(body: MemberCreate) -> dict[str, Any]:
    member = {
        **body.model_dump(),
        "id": str(uuid.uuid4()),
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    with get_store().edit() as data:
        data["members"].append(member)
    return member


@router.put("/members/{member_id}")
def update_member(member_id: str, body: MemberUpdate) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    changes.pop("id", None)

    with get_store().edit() as data:
        member = next((m for m in data["members"] if m.get("id") == member_id), None)
        if member is None:
            raise HTTPException(status_code=404, detail="Member not found")
        member.update(changes)
    return member


@router.delete("/members/{member_id}")
def delete_member(member_id: str) -> dict[str, Any]:
    """Remove a member together with every relationship that mentions them."""

    with get_store().edit() as data:
        data["members"] = [m for m in data["members"] if m.get("id") != member_id]
        data["relationships"] = [
            r for r in data["relationships"] if r.get("person1") != member_id and r.get("person2") != member_id
        ]
    return {"ok": True}
