from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException

from ..models import RelationshipCreate
from ..store import get_store

router = APIRouter(tags=["relationships"])


def _is_duplicate(existing: dict[str, Any], rel: dict[str, Any]) -> bool:
    if existing.get("type") != rel["type"]:
        return False
    a, b = existing.get("person1"), existing.get("person2")
    if (a, b) == (rel["person1"], rel["person2"]):
        return True
    # Spouse links are symmetric.
    return rel["type"] == "spouse" and (b, a) == (rel["person1"], rel["person2"])


@router.post("/relationships")
def create_relationship(body: RelationshipCreate) -> dict[str, Any]:
    if body.person1 == body.person2:
        raise HTTPException(status_code=400, detail="Select two different people")

    rel = {"id": str(uuid.uuid4()), "type": body.type, "person1": body.person1, "person2": body.person2}

    with get_store().edit() as data:
        known = {m.get("id") for m in data["members"]}
        missing = [pid for pid in (body.person1, body.person2) if pid not in known]
        if missing:
            raise HTTPException(status_code=400, detail=f"unknown person: {missing[0]}")
        if any(_is_duplicate(r, rel) for r in data["relationships"]):
            raise HTTPException(status_code=409, detail="Relationship already exists")
        data["relationships"].append(rel)
    return rel


@router.delete("/relationships/{relationship_id}")
def delete_relationship(relationship_id: str) -> dict[str, Any]:
    with get_store().edit() as data:
        data["relationships"] = [r for r in data["relationships"] if r.get("id") != relationship_id]
    return {"ok": True}
