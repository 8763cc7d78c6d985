"""Tree layout: generation rows, couple/single units, row ordering and connector geometry.

The layout is a pure function of the members/relationships snapshot. It keeps no
state between calls and never mutates its input, so callers simply recompute it
after every edit.

Stages, each depending only on the previous one:

1. ``assign_generations`` - person -> row (depth), honoring overrides.
2. ``form_units`` - greedy spouse pairing into couple/single units per row.
3. ``order_units`` - parent-locality ordering of units within each row.
   This is a cheap heuristic, not a crossing minimizer. Stored manual offsets are
   keyed by unit, so changes to this ordering move people around on screen.
4. ``compute_layout`` - pixel positions, spouse lines, parent->child routing and
   generation labels.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping

log = logging.getLogger(__name__)

SPOUSE = "spouse"
PARENT_CHILD = "parent-child"

# Manual unit offsets are clamped to this many pixels either way.
OFFSET_CLAMP = 2000.0


@dataclass(frozen=True)
class LayoutConfig:
    card_w: float = 110
    card_h: float = 130
    couple_gap: float = 16
    sibling_gap: float = 40
    gen_gap: float = 70
    padding: float = 40
    spouse_line_offset: float = 38
    # The parent stem starts this far above the bottom edge of the card.
    stem_inset: float = 20
    lane_gap: float = 10
    lanes: int = 6
    label_offset: float = 16
    label_char_w: float = 3.5

    def unit_width(self, size: int) -> float:
        if size == 2:
            return 2 * self.card_w + self.couple_gap
        return self.card_w


DEFAULT_CONFIG = LayoutConfig()


@dataclass(frozen=True)
class Unit:
    """One person, or a spouse pair drawn side by side (left, right)."""

    key: str
    members: tuple[str, ...]
    row: int


@dataclass
class Node:
    person_id: str
    x: float
    y: float
    unit_key: str


@dataclass
class Line:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass
class GenLabel:
    text: str
    x: float
    y: float


@dataclass
class Row:
    row: int
    units: list[str]


@dataclass
class LayoutResult:
    rows: list[Row] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    lines: list[Line] = field(default_factory=list)
    labels: list[GenLabel] = field(default_factory=list)
    width: float = 0
    height: float = 0

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def to_dict(self) -> dict[str, Any]:
        return {
            "empty": self.is_empty,
            "rows": [asdict(r) for r in self.rows],
            "nodes": [{"id": n.person_id, "x": n.x, "y": n.y, "unitKey": n.unit_key} for n in self.nodes],
            "lines": [asdict(ln) for ln in self.lines],
            "genLabels": [asdict(gl) for gl in self.labels],
            "width": self.width,
            "height": self.height,
        }


@dataclass
class FamilyGraph:
    """Sanitized view of a snapshot.

    Members without an id are skipped, duplicate ids keep their first occurrence, and
    relationships pointing at unknown people, at the same person twice, or of an
    unknown type are dropped.
    """

    people: dict[str, Mapping[str, Any]]
    spouse_pairs: list[tuple[str, str]]
    parent_child: list[tuple[str, str]]
    spouses_of: dict[str, list[str]]

    @classmethod
    def from_snapshot(cls, members: Any, relationships: Any) -> FamilyGraph:
        people: dict[str, Mapping[str, Any]] = {}
        for m in _as_list(members):
            if not isinstance(m, Mapping):
                continue
            pid = m.get("id")
            if pid is None or isinstance(pid, bool):
                continue
            pid = str(pid)
            if not pid or pid in people:
                continue
            people[pid] = m

        spouse_pairs: list[tuple[str, str]] = []
        parent_child: list[tuple[str, str]] = []
        for r in _as_list(relationships):
            if not isinstance(r, Mapping):
                continue
            a, b = r.get("person1"), r.get("person2")
            if a is None or b is None:
                continue
            a, b = str(a), str(b)
            if a == b or a not in people or b not in people:
                continue
            rel_type = r.get("type")
            if rel_type == SPOUSE:
                spouse_pairs.append((a, b))
            elif rel_type == PARENT_CHILD:
                parent_child.append((a, b))

        spouses_of: dict[str, list[str]] = {pid: [] for pid in people}
        for a, b in spouse_pairs:
            spouses_of[a].append(b)
            spouses_of[b].append(a)

        return cls(people=people, spouse_pairs=spouse_pairs, parent_child=parent_child, spouses_of=spouses_of)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _parse_override(value: Any) -> int | None:
    """Return a usable generation override, or None for anything malformed."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v) or v < 0:
        return None
    return int(math.floor(v))


# ---------------------------------------------------------------------------
# Stage 1: generation assignment
# ---------------------------------------------------------------------------


def _spouse_component(graph: FamilyGraph, start: str, visited: set[str]) -> list[str]:
    component = [start]
    visited.add(start)
    frontier = [start]
    while frontier:
        next_frontier: list[str] = []
        for node in frontier:
            for nb in graph.spouses_of.get(node, []):
                if nb in visited:
                    continue
                visited.add(nb)
                component.append(nb)
                next_frontier.append(nb)
        frontier = next_frontier
    return component


def _override_anchors(graph: FamilyGraph) -> dict[str, int]:
    anchor: dict[str, int] = {}
    for pid, m in graph.people.items():
        v = _parse_override(m.get("generationOverride"))
        if v is not None:
            anchor[pid] = v

    # Everyone anchored inside one spouse cluster takes the cluster's highest override.
    visited: set[str] = set()
    for start in list(anchor):
        if start in visited:
            continue
        component = _spouse_component(graph, start, visited)
        top = max(anchor[pid] for pid in component if pid in anchor)
        for pid in component:
            if pid in anchor:
                anchor[pid] = top

    return anchor


def assign_generations(graph: FamilyGraph) -> dict[str, int]:
    """Return person -> depth with spouses level, children below parents, overrides honored.

    Repeated full passes until nothing changes, capped at ``8 * len(people)`` rounds so
    parent/child cycles end with a best-effort answer instead of looping forever.
    The result is shifted so the shallowest generation is 0.
    """

    if not graph.people:
        return {}

    depth: dict[str, int] = {pid: 0 for pid in graph.people}
    anchor = _override_anchors(graph)
    for pid, v in anchor.items():
        depth[pid] = max(depth[pid], v)

    max_rounds = 8 * len(graph.people)
    for _ in range(max_rounds):
        changed = False

        for a, b in graph.spouse_pairs:
            mx = max(depth[a], depth[b])
            if depth[a] != mx:
                depth[a] = mx
                changed = True
            if depth[b] != mx:
                depth[b] = mx
                changed = True

        for pid, v in anchor.items():
            if depth[pid] < v:
                depth[pid] = v
                changed = True

        for parent, child in graph.parent_child:
            want = depth[parent] + 1
            if depth[child] < want:
                depth[child] = want
                changed = True

        if not changed:
            break
    else:
        log.debug("Generation assignment did not settle after %d rounds", max_rounds)

    low = min(depth.values())
    return {pid: d - low for pid, d in depth.items()}


# ---------------------------------------------------------------------------
# Stage 2: unit formation
# ---------------------------------------------------------------------------


def _gender(member: Mapping[str, Any]) -> str:
    return str(member.get("gender") or "").strip().lower()


def _couple_order(graph: FamilyGraph, a: str, b: str) -> tuple[str, str]:
    ga, gb = _gender(graph.people[a]), _gender(graph.people[b])
    if ga == "male" and gb == "female":
        return a, b
    if ga == "female" and gb == "male":
        return b, a
    left, right = sorted((a, b))
    return left, right


def unit_key(members: Iterable[str]) -> str:
    return "|".join(members)


def form_units(graph: FamilyGraph, depth: Mapping[str, int]) -> list[Unit]:
    """Pair each person with the first unclaimed same-row spouse, else leave them single.

    Greedy and order dependent: rows are scanned top-down and people in input order.
    Nobody is ever placed in two units.
    """

    by_row: dict[int, list[str]] = {}
    for pid in graph.people:
        if pid in depth:
            by_row.setdefault(depth[pid], []).append(pid)

    claimed: set[str] = set()
    units: list[Unit] = []
    for row in sorted(by_row):
        for pid in by_row[row]:
            if pid in claimed:
                continue
            spouse = next(
                (s for s in graph.spouses_of.get(pid, []) if s not in claimed and depth.get(s) == row),
                None,
            )
            members = (pid,) if spouse is None else _couple_order(graph, pid, spouse)
            claimed.update(members)
            units.append(Unit(key=unit_key(members), members=members, row=row))

    return units


# ---------------------------------------------------------------------------
# Stage 3: unit ordering
# ---------------------------------------------------------------------------


def _sort_name(member: Mapping[str, Any]) -> str:
    return f"{member.get('lastName') or ''} {member.get('firstName') or ''}".lower()


def order_units(graph: FamilyGraph, units: list[Unit]) -> list[list[Unit]]:
    """Return units per row (index = row), children following their parents' order.

    Row 0 starts with parentless units sorted by "last first" name, then the rest.
    Each later row lists the children of the previous row's units in discovery order,
    then any unit not reached that way in its natural order.
    """

    if not units:
        return []

    by_key = {u.key: u for u in units}
    unit_of = {pid: u.key for u in units for pid in u.members}

    rows: list[list[Unit]] = [[] for _ in range(max(u.row for u in units) + 1)]
    for u in units:
        rows[u.row].append(u)

    unit_children: dict[str, list[str]] = {u.key: [] for u in units}
    has_parent: set[str] = set()
    for parent, child in graph.parent_child:
        pu, cu = unit_of.get(parent), unit_of.get(child)
        if pu is None or cu is None or pu == cu:
            continue
        if cu not in unit_children[pu]:
            unit_children[pu].append(cu)
        has_parent.add(cu)

    roots = sorted(
        (u for u in rows[0] if u.key not in has_parent),
        key=lambda u: _sort_name(graph.people[u.members[0]]),
    )
    ordered: list[list[Unit]] = [roots + [u for u in rows[0] if u.key in has_parent]]

    for row in range(1, len(rows)):
        placed: set[str] = set()
        next_row: list[Unit] = []
        for u in ordered[-1]:
            for ck in unit_children[u.key]:
                cu = by_key[ck]
                if cu.row != row or ck in placed:
                    continue
                placed.add(ck)
                next_row.append(cu)
        next_row.extend(u for u in rows[row] if u.key not in placed)
        ordered.append(next_row)

    return ordered


# ---------------------------------------------------------------------------
# Stage 4: geometry and routing
# ---------------------------------------------------------------------------


def generation_label(from_bottom: int) -> str:
    if from_bottom <= 0:
        return "Children"
    if from_bottom == 1:
        return "Parents"
    if from_bottom == 2:
        return "Grandparents"
    return "Great-" * (from_bottom - 2) + "Grandparents"


def clamp_offset(dx: Any) -> float | None:
    try:
        v = float(dx)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v):
        return None
    return max(-OFFSET_CLAMP, min(OFFSET_CLAMP, v))


def _unit_offsets(offsets: Any) -> dict[str, float]:
    """Accept ``{unitKey: {"dx": n}}`` (or ``{unitKey: n}``); drop anything unusable."""

    if not isinstance(offsets, Mapping):
        return {}
    out: dict[str, float] = {}
    for key, value in offsets.items():
        raw = value.get("dx") if isinstance(value, Mapping) else value
        if isinstance(raw, bool):
            continue
        dx = clamp_offset(raw)
        if dx is not None:
            out[str(key)] = dx
    return out


def _route_children(
    parent_cx: float,
    parent_bottom: float,
    child_nodes: list[Node],
    lane: int,
    config: LayoutConfig,
) -> list[Line]:
    child_top = min(n.y for n in child_nodes)
    mid_y = parent_bottom + (child_top - parent_bottom) / 2 + lane * config.lane_gap

    lines = [Line(parent_cx, parent_bottom, parent_cx, mid_y)]
    # Children may sit in different rows; each drop ends at its own card.
    drops = sorted((n.x + config.card_w / 2, n.y) for n in child_nodes)

    if len(drops) == 1:
        cx, top = drops[0]
        lines.append(Line(parent_cx, mid_y, cx, mid_y))
        lines.append(Line(cx, mid_y, cx, top))
        return lines

    lo, hi = drops[0][0], drops[-1][0]
    lines.append(Line(lo, mid_y, hi, mid_y))
    join_x = min(max(parent_cx, lo), hi)
    lines.append(Line(parent_cx, mid_y, join_x, mid_y))
    for cx, top in drops:
        lines.append(Line(cx, mid_y, cx, top))
    return lines


def compute_layout(
    members: Any,
    relationships: Any,
    *,
    offsets: Any = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> LayoutResult:
    """Lay out the whole tree.

    ``offsets`` are the caller's manual per-unit horizontal adjustments. They are
    applied after each row is centered and before connectors are routed, so lines
    follow the moved cards. Offsets for unit keys that do not exist are ignored.
    """

    graph = FamilyGraph.from_snapshot(members, relationships)
    if not graph.people:
        return LayoutResult()

    depth = assign_generations(graph)
    units = form_units(graph, depth)
    ordered = order_units(graph, units)

    # Rows left empty by an override gap take no vertical space.
    occupied = [(row, row_units) for row, row_units in enumerate(ordered) if row_units]
    c = config

    row_widths = [
        sum(c.unit_width(len(u.members)) + c.sibling_gap for u in row_units) - c.sibling_gap
        for _row, row_units in occupied
    ]
    canvas_w = max(row_widths) + 2 * c.padding
    dx_by_key = _unit_offsets(offsets)

    result = LayoutResult(width=canvas_w)
    node_by_id: dict[str, Node] = {}
    unit_cx: dict[str, float] = {}

    for gi, ((row, row_units), row_w) in enumerate(zip(occupied, row_widths)):
        y = c.padding + gi * (c.card_h + c.gen_gap)
        x = (canvas_w - row_w) / 2
        for u in row_units:
            w = c.unit_width(len(u.members))
            ux = x + dx_by_key.get(u.key, 0.0)
            if len(u.members) == 2:
                left, right = u.members
                x1, x2 = ux, ux + c.card_w + c.couple_gap
                node_by_id[left] = Node(left, x1, y, u.key)
                node_by_id[right] = Node(right, x2, y, u.key)
                result.nodes.extend([node_by_id[left], node_by_id[right]])

                line_y = y + c.spouse_line_offset
                result.lines.append(Line(x1 + c.card_w / 2, line_y, x2 + c.card_w / 2, line_y))
            else:
                pid = u.members[0]
                node_by_id[pid] = Node(pid, ux, y, u.key)
                result.nodes.append(node_by_id[pid])
            unit_cx[u.key] = ux + w / 2
            x += w + c.sibling_gap
        result.rows.append(Row(row=row, units=[u.key for u in row_units]))

    children_of: dict[str, list[str]] = {}
    for parent, child in graph.parent_child:
        children_of.setdefault(parent, []).append(child)

    for gi, (_row, row_units) in enumerate(occupied):
        y = c.padding + gi * (c.card_h + c.gen_gap)
        for ui, u in enumerate(row_units):
            child_ids: list[str] = []
            for pid in u.members:
                for cid in children_of.get(pid, []):
                    if cid not in child_ids:
                        child_ids.append(cid)
            child_nodes = [node_by_id[cid] for cid in child_ids if cid in node_by_id]
            if not child_nodes:
                continue
            result.lines.extend(
                _route_children(unit_cx[u.key], y + c.card_h - c.stem_inset, child_nodes, ui % c.lanes, c)
            )

    n = len(occupied)
    if n > 1:
        for gi in range(n):
            text = generation_label(n - 1 - gi)
            y = c.padding + gi * (c.card_h + c.gen_gap) - c.label_offset
            result.labels.append(GenLabel(text=text, x=canvas_w / 2 - len(text) * c.label_char_w, y=y))

    result.height = 2 * c.padding + n * c.card_h + (n - 1) * c.gen_gap
    return result


def layout_family(document: Any, *, offsets: Any = None, config: LayoutConfig = DEFAULT_CONFIG) -> LayoutResult:
    """Lay out a stored family document (``members``/``relationships``; settings are ignored)."""

    if not isinstance(document, Mapping):
        return LayoutResult()
    return compute_layout(
        document.get("members"),
        document.get("relationships"),
        offsets=offsets,
        config=config,
    )
