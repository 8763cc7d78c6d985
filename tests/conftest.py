from __future__ import annotations

from typing import Any

import pytest

import familytree.routes.family as family_routes
import familytree.routes.layout as layout_routes
import familytree.routes.members as members_routes
import familytree.routes.relationships as relationships_routes
from familytree.store import FamilyStore


@pytest.fixture()
def store(tmp_path, monkeypatch) -> FamilyStore:
    """A store in a temp dir, wired into every route module."""
    s = FamilyStore(tmp_path / "data")
    for mod in (family_routes, members_routes, relationships_routes, layout_routes):
        monkeypatch.setattr(mod, "get_store", lambda: s)
    return s


@pytest.fixture()
def sample_family() -> dict[str, Any]:
    # Grandparents Ron & Betty, their children Jace and Alyssa (married to Aaron),
    # and Jace's two children.
    return {
        "settings": {"title": "Our Family Tree", "subtitle": "The Anderson & Brown Family"},
        "members": [
            {"id": "gf1", "firstName": "Betty", "lastName": "Brown", "gender": "female"},
            {"id": "gm1", "firstName": "Ron", "lastName": "Anderson", "gender": "male"},
            {"id": "p2", "firstName": "Jace", "lastName": "Anderson", "gender": "male"},
            {"id": "p3", "firstName": "Alyssa", "lastName": "Anderson", "maidenName": "Lewis", "gender": "female"},
            {"id": "p4", "firstName": "Aaron", "lastName": "Lewis", "gender": "male"},
            {"id": "c1", "firstName": "Jessie", "lastName": "Anderson", "gender": "female"},
            {"id": "c2", "firstName": "Evan", "lastName": "Anderson", "gender": "male"},
        ],
        "relationships": [
            {"id": "r1", "type": "spouse", "person1": "gf1", "person2": "gm1"},
            {"id": "r3", "type": "parent-child", "person1": "gf1", "person2": "p2"},
            {"id": "r4", "type": "parent-child", "person1": "gm1", "person2": "p2"},
            {"id": "r5", "type": "parent-child", "person1": "gm1", "person2": "p3"},
            {"id": "r6", "type": "parent-child", "person1": "gf1", "person2": "p3"},
            {"id": "r7", "type": "spouse", "person1": "p3", "person2": "p4"},
            {"id": "r8", "type": "parent-child", "person1": "p2", "person2": "c1"},
            {"id": "r9", "type": "parent-child", "person1": "p2", "person2": "c2"},
        ],
    }
