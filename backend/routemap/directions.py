from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import QueryError
from .geo import bearing_change_deg
from .graph import RoadGraph

UNKNOWN_ROAD = "unknown road"


class TurnCategory(str, Enum):
    START = "start"
    STRAIGHT = "straight"
    SLIGHT_LEFT = "slight_left"
    SLIGHT_RIGHT = "slight_right"
    LEFT = "left"
    RIGHT = "right"
    SHARP_LEFT = "sharp_left"
    SHARP_RIGHT = "sharp_right"

    @property
    def phrase(self) -> str:
        return _PHRASES[self]


_PHRASES: dict[TurnCategory, str] = {
    TurnCategory.START: "Start",
    TurnCategory.STRAIGHT: "Go straight",
    TurnCategory.SLIGHT_LEFT: "Slight left",
    TurnCategory.SLIGHT_RIGHT: "Slight right",
    TurnCategory.LEFT: "Turn left",
    TurnCategory.RIGHT: "Turn right",
    TurnCategory.SHARP_LEFT: "Sharp left",
    TurnCategory.SHARP_RIGHT: "Sharp right",
}
_CATEGORY_BY_PHRASE = {phrase: category for category, phrase in _PHRASES.items()}

_DIRECTION_RE = re.compile(
    r"(?P<category>[A-Za-z ]+?) on (?P<way>.+) and continue for (?P<distance>[0-9]+\.[0-9]{3}) miles\."
)


@dataclass(frozen=True)
class DirectionSegment:
    category: TurnCategory
    way: str
    distance_miles: float

    def render(self) -> str:
        return render_direction(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "way": self.way,
            "distance_miles": self.distance_miles,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> DirectionSegment:
        try:
            category = TurnCategory(payload["category"])
            way = str(payload["way"])
            distance = float(payload["distance_miles"])
        except (KeyError, TypeError, ValueError) as exc:
            raise QueryError(
                "unparseable_direction",
                f"invalid direction payload: {exc}",
                details={"payload": payload},
            ) from exc
        return cls(category=category, way=way or UNKNOWN_ROAD, distance_miles=distance)


def classify_bearing_change(delta_deg: float) -> TurnCategory:
    """Bucket a signed heading change; negative is a left turn."""
    magnitude = abs(delta_deg)
    left = delta_deg < 0
    if magnitude < 15.0:
        return TurnCategory.STRAIGHT
    if magnitude < 30.0:
        return TurnCategory.SLIGHT_LEFT if left else TurnCategory.SLIGHT_RIGHT
    if magnitude < 100.0:
        return TurnCategory.LEFT if left else TurnCategory.RIGHT
    return TurnCategory.SHARP_LEFT if left else TurnCategory.SHARP_RIGHT


def _way_of(graph: RoadGraph, node_id: int) -> str:
    return graph.node(node_id).way_name or UNKNOWN_ROAD


def route_directions(graph: RoadGraph, route: Sequence[int]) -> list[DirectionSegment]:
    """Collapse a node path into one segment per run of identical way names.

    The leg that enters a node on a new way still counts toward the previous
    segment; the turn is classified from the heading change at that node.
    """
    if not route:
        return []

    segments: list[DirectionSegment] = []
    category = TurnCategory.START
    way = _way_of(graph, route[0])
    distance = 0.0
    for idx in range(1, len(route)):
        prev, cur = route[idx - 1], route[idx]
        distance += graph.distance(prev, cur)
        cur_way = _way_of(graph, cur)
        if cur_way == way:
            continue
        segments.append(DirectionSegment(category=category, way=way, distance_miles=distance))
        heading_out = graph.bearing(prev, cur)
        if idx >= 2:
            heading_in = graph.bearing(route[idx - 2], prev)
            delta = bearing_change_deg(heading_in, heading_out)
        else:
            delta = 0.0
        category = classify_bearing_change(delta)
        way = cur_way
        distance = 0.0
    segments.append(DirectionSegment(category=category, way=way, distance_miles=distance))
    return segments


def render_direction(segment: DirectionSegment) -> str:
    return f"{segment.category.phrase} on {segment.way} and continue for {segment.distance_miles:.3f} miles."


def parse_direction(text: str | None) -> DirectionSegment:
    """Inverse of :func:`render_direction`; anything else is rejected."""
    if text is None:
        raise QueryError("invalid_argument", "direction text must be a string, got null")
    match = _DIRECTION_RE.fullmatch(text)
    if match is None:
        raise QueryError("unparseable_direction", "text is not a rendered direction", details={"text": text})
    category = _CATEGORY_BY_PHRASE.get(match.group("category"))
    if category is None:
        raise QueryError(
            "unparseable_direction",
            f"unknown direction phrase {match.group('category')!r}",
            details={"text": text},
        )
    return DirectionSegment(
        category=category,
        way=match.group("way"),
        distance_miles=float(match.group("distance")),
    )
