from __future__ import annotations

from typing import Any

import pytest

from familytree.layout import (
    DEFAULT_CONFIG,
    Line,
    LayoutResult,
    compute_layout,
    generation_label,
    layout_family,
)


def _node_map(result: LayoutResult) -> dict[str, tuple[float, float]]:
    return {n.person_id: (n.x, n.y) for n in result.nodes}


def _pc(parent: str, child: str) -> dict[str, str]:
    return {"type": "parent-child", "person1": parent, "person2": child}


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def test_empty_input_is_explicitly_empty() -> None:
    result = compute_layout([], [])

    assert result.is_empty
    assert result.rows == []
    assert result.lines == []
    assert result.labels == []
    assert (result.width, result.height) == (0, 0)
    assert result.to_dict()["empty"] is True


def test_couple_single_row() -> None:
    members = [{"id": "a", "gender": "male"}, {"id": "b", "gender": "female"}]
    result = compute_layout(members, [{"type": "spouse", "person1": "a", "person2": "b"}])

    assert [(r.row, r.units) for r in result.rows] == [(0, ["a|b"])]
    assert _node_map(result) == {"a": (40, 40), "b": (166, 40)}
    assert result.lines == [Line(95, 78, 221, 78)]
    assert result.labels == []
    assert result.width == 2 * 110 + 16 + 80
    assert result.height == 2 * 40 + 130


def test_three_generation_chain_labels() -> None:
    members = [{"id": "gp"}, {"id": "p"}, {"id": "c"}]
    result = compute_layout(members, [_pc("gp", "p"), _pc("p", "c")])

    assert [r.row for r in result.rows] == [0, 1, 2]
    assert [gl.text for gl in result.labels] == ["Grandparents", "Parents", "Children"]
    assert result.height == 2 * 40 + 3 * 130 + 2 * 70

    # Single child: stem, elbow, drop.
    assert result.lines[:3] == [
        Line(95, 150, 95, 195),
        Line(95, 195, 95, 195),
        Line(95, 195, 95, 240),
    ]
    assert len(result.lines) == 6


def test_lone_override_lands_in_row_zero() -> None:
    result = compute_layout([{"id": "solo", "generationOverride": 3}], [])

    assert [r.row for r in result.rows] == [0]
    assert _node_map(result) == {"solo": (40, 40)}
    assert result.labels == []


def test_parent_with_three_children_uses_one_bar() -> None:
    members = [{"id": "p"}, {"id": "c1"}, {"id": "c2"}, {"id": "c3"}]
    result = compute_layout(members, [_pc("p", "c1"), _pc("p", "c2"), _pc("p", "c3")])

    # Row 1 is 3 cards + 2 gaps wide; the parent is centred over it.
    assert result.width == 3 * 110 + 2 * 40 + 80
    assert _node_map(result)["p"] == (190, 40)

    assert result.lines == [
        Line(245, 150, 245, 195),  # stem
        Line(95, 195, 395, 195),  # bar across every child
        Line(245, 195, 245, 195),  # join, parent already inside the span
        Line(95, 195, 95, 240),
        Line(245, 195, 245, 240),
        Line(395, 195, 395, 240),
    ]
    horizontal = [ln for ln in result.lines if ln.y1 == ln.y2 and ln.x1 != ln.x2]
    assert horizontal == [Line(95, 195, 395, 195)]


def test_missing_person_makes_no_phantom_node() -> None:
    members = [{"id": "a"}]
    rels = [_pc("a", "ghost"), {"type": "spouse", "person1": "ghost", "person2": "a"}]
    result = compute_layout(members, rels)

    assert [n.person_id for n in result.nodes] == ["a"]
    assert result.lines == []


def test_sample_family_geometry(sample_family: dict[str, Any]) -> None:
    result = layout_family(sample_family)
    nodes = _node_map(result)

    assert result.width == 466
    assert result.height == 610
    assert nodes == {
        "gm1": (115, 40),
        "gf1": (241, 40),
        "p2": (40, 240),
        "p4": (190, 240),
        "p3": (316, 240),
        "c1": (103, 440),
        "c2": (253, 440),
    }
    assert [gl.text for gl in result.labels] == ["Grandparents", "Parents", "Children"]

    # Grandparents' children p2 and p3 share one bar; the join starts at the couple centre.
    assert Line(95, 195, 371, 195) in result.lines
    assert Line(233, 150, 233, 195) in result.lines
    assert len(result.lines) == 12


def test_children_in_different_rows_each_get_a_full_drop() -> None:
    members = [{"id": "p"}, {"id": "c1"}, {"id": "c2", "generationOverride": 3}]
    result = compute_layout(members, [_pc("p", "c1"), _pc("p", "c2")])
    nodes = _node_map(result)

    assert nodes["c1"] == (40, 240)
    assert nodes["c2"] == (40, 440)

    # The bar sits between the parent and the nearer child; drops end at each card.
    assert Line(95, 195, 95, 240) in result.lines
    assert Line(95, 195, 95, 440) in result.lines
    assert max(ln.y2 for ln in result.lines) == 440


def test_lane_offset_staggers_sibling_units() -> None:
    members = [
        {"id": "a", "lastName": "Adams"},
        {"id": "b", "lastName": "Brown"},
        {"id": "a1"},
        {"id": "b1"},
    ]
    result = compute_layout(members, [_pc("a", "a1"), _pc("b", "b1")])

    stems = [ln for ln in result.lines if ln.y1 == 150]
    assert [ln.y2 for ln in stems] == [195, 195 + DEFAULT_CONFIG.lane_gap]


def test_empty_middle_rows_take_no_space() -> None:
    members = [{"id": "p"}, {"id": "k", "generationOverride": 3}]
    result = compute_layout(members, [_pc("p", "k")])

    assert [r.row for r in result.rows] == [0, 3]
    assert _node_map(result)["k"][1] == 40 + 130 + 70
    assert [gl.text for gl in result.labels] == ["Parents", "Children"]


@pytest.mark.parametrize(
    "from_bottom, text",
    [
        (0, "Children"),
        (1, "Parents"),
        (2, "Grandparents"),
        (3, "Great-Grandparents"),
        (5, "Great-Great-Great-Grandparents"),
    ],
)
def test_generation_label(from_bottom: int, text: str) -> None:
    assert generation_label(from_bottom) == text


def test_label_is_centred_on_canvas() -> None:
    result = compute_layout([{"id": "p"}, {"id": "c"}], [_pc("p", "c")])
    top = result.labels[0]
    assert top.text == "Parents"
    assert top.x == result.width / 2 - len("Parents") * 3.5
    assert top.y == 40 - 16


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


def test_units_do_not_overlap_within_row(sample_family: dict[str, Any]) -> None:
    result = layout_family(sample_family)
    by_unit: dict[str, list[float]] = {}
    for n in result.nodes:
        by_unit.setdefault(n.unit_key, []).append(n.x)

    for row in result.rows:
        extents = [(min(by_unit[k]), max(by_unit[k]) + DEFAULT_CONFIG.card_w) for k in row.units]
        for (_l1, r1), (l2, _r2) in zip(extents, extents[1:]):
            assert r1 < l2


def test_layout_is_deterministic(sample_family: dict[str, Any]) -> None:
    assert layout_family(sample_family).to_dict() == layout_family(sample_family).to_dict()


def test_input_is_not_mutated(sample_family: dict[str, Any]) -> None:
    import copy

    before = copy.deepcopy(sample_family)
    layout_family(sample_family, offsets={"p2": {"dx": 10}})
    assert sample_family == before


@pytest.mark.parametrize(
    "members, relationships",
    [
        ("not a list", None),
        ([None, 3, "x", {"name": "no id"}], [None, "x"]),
        ([{"id": "a"}, {"id": "b"}], [{"type": "cousin", "person1": "a", "person2": "b"}, {"type": "spouse"}]),
        ([{"id": "a", "gender": None, "lastName": None}], [{"type": "spouse", "person1": "a", "person2": None}]),
    ],
)
def test_garbage_input_never_raises(members: Any, relationships: Any) -> None:
    result = compute_layout(members, relationships)
    assert isinstance(result, LayoutResult)


def test_non_mapping_document_is_empty() -> None:
    assert layout_family(None).is_empty


# ---------------------------------------------------------------------------
# Manual offsets
# ---------------------------------------------------------------------------


class TestOffsets:
    def test_couple_offset_moves_cards_and_lines(self) -> None:
        members = [
            {"id": "m", "gender": "male"},
            {"id": "f", "gender": "female"},
            {"id": "k"},
        ]
        rels = [
            {"type": "spouse", "person1": "m", "person2": "f"},
            _pc("m", "k"),
        ]
        base = compute_layout(members, rels)
        moved = compute_layout(members, rels, offsets={"m|f": {"dx": 30}})

        b, m = _node_map(base), _node_map(moved)
        assert m["m"][0] == b["m"][0] + 30
        assert m["f"][0] == b["f"][0] + 30
        assert m["k"] == b["k"]

        spouse_line = moved.lines[0]
        assert spouse_line.x1 == base.lines[0].x1 + 30
        stem = moved.lines[1]
        assert stem.x1 == base.lines[1].x1 + 30

    def test_offset_is_clamped(self) -> None:
        result = compute_layout([{"id": "a"}], [], offsets={"a": {"dx": 99999}})
        assert _node_map(result)["a"][0] == 40 + 2000

    def test_unknown_or_bad_offsets_are_ignored(self) -> None:
        base = compute_layout([{"id": "a"}], [])
        result = compute_layout(
            [{"id": "a"}],
            [],
            offsets={"a|gone": {"dx": 50}, "a": {"dx": "wide"}},
        )
        assert _node_map(result) == _node_map(base)

    def test_plain_number_offsets_accepted(self) -> None:
        result = compute_layout([{"id": "a"}], [], offsets={"a": -15})
        assert _node_map(result)["a"][0] == 25
