from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .errors import QueryError
from .geo import bearing_deg, distance_miles
from .logging_utils import log_event


@dataclass(eq=True, unsafe_hash=True)
class Node:
    """A graph vertex. Identity (equality and hashing) is the OSM id alone."""

    id: int
    lon: float = field(compare=False)
    lat: float = field(compare=False)
    name: str | None = field(default=None, compare=False)
    way_id: int | None = field(default=None, compare=False)
    way_name: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Edge:
    start: int
    end: int
    weight: float

    def other(self, node_id: int) -> int:
        return self.end if self.start == node_id else self.start

    def touches(self, node_id: int) -> bool:
        return node_id == self.start or node_id == self.end


class RoadGraph:
    """Undirected road network keyed by node id.

    Nodes never hold references to each other: adjacency is a per-id list of
    neighbour ids and incident edges are stored per id, so the structure is
    acyclic and can be shared read-only across concurrent queries once
    :meth:`clean` has run.

    Pruning removes isolated nodes only. The remaining graph is assumed, not
    guaranteed, to be connected; route queries between components report
    ``no_route``.
    """

    def __init__(self) -> None:
        self._nodes: dict[int, Node] = {}
        self._neighbors: dict[int, list[int]] = {}
        self._edges: dict[int, list[Edge]] = {}
        self._frozen = False
        # Smallest weight / great-circle ratio over all edges, capped at 1.
        self._min_weight_ratio = 1.0

    # ---- construction -----------------------------------------------------

    def _require_mutable(self) -> None:
        if self._frozen:
            raise QueryError("graph_frozen", "graph is read-only after cleaning")

    def add_node(
        self,
        node_id: int,
        lon: float,
        lat: float,
        *,
        name: str | None = None,
        way_id: int | None = None,
        way_name: str | None = None,
    ) -> Node:
        self._require_mutable()
        node = Node(
            id=int(node_id),
            lon=float(lon),
            lat=float(lat),
            name=name,
            way_id=way_id,
            way_name=way_name,
        )
        self._nodes[node.id] = node
        self._neighbors.setdefault(node.id, [])
        return node

    def connect(self, a: int, b: int) -> None:
        """Register ``a`` and ``b`` as neighbours of each other."""
        self._require_mutable()
        self.node(a)
        self.node(b)
        if a == b:
            return
        if b not in self._neighbors[a]:
            self._neighbors[a].append(b)
        if a not in self._neighbors[b]:
            self._neighbors[b].append(a)

    def add_edge(self, a: int, b: int, weight: float | None = None) -> Edge:
        """Register an undirected edge under both endpoint ids.

        ``weight`` defaults to the great-circle distance between the endpoints.
        Explicit weights may be shorter than that leg; :attr:`heuristic_scale`
        shrinks accordingly so the default A* heuristic stays admissible.
        """
        self._require_mutable()
        leg = self.distance(a, b)
        if weight is None:
            weight = leg
        weight = float(weight)
        if not weight >= 0.0:
            raise QueryError(
                "invalid_argument",
                f"edge weight must be a non-negative number, got {weight!r}",
                details={"start": a, "end": b},
            )
        if leg > 0.0:
            self._min_weight_ratio = min(self._min_weight_ratio, weight / leg)
        edge = Edge(start=int(a), end=int(b), weight=weight)
        self.connect(edge.start, edge.end)
        self._edges.setdefault(edge.start, []).append(edge)
        if edge.end != edge.start:
            self._edges.setdefault(edge.end, []).append(edge)
        return edge

    def attach_way(self, node_id: int, *, way_id: int, way_name: str | None) -> None:
        self._require_mutable()
        node = self.node(node_id)
        node.way_id = way_id
        node.way_name = way_name

    def remove_node(self, node_id: int) -> None:
        self._require_mutable()
        self.node(node_id)
        for edge in self._edges.pop(node_id, []):
            other = edge.other(node_id)
            incident = self._edges.get(other)
            if incident is not None and other != node_id:
                self._edges[other] = [e for e in incident if not e.touches(node_id)]
        for other in self._neighbors.pop(node_id, []):
            neighbors = self._neighbors.get(other)
            if neighbors is not None and node_id in neighbors:
                neighbors.remove(node_id)
        del self._nodes[node_id]

    def remove_ids(self, ids: Iterable[int]) -> None:
        for node_id in ids:
            self.remove_node(node_id)

    def clean(self) -> int:
        """Drop every node without neighbours and freeze the graph. Runs once."""
        self._require_mutable()
        isolated = [node_id for node_id in self.vertices() if not self._neighbors.get(node_id)]
        self.remove_ids(isolated)
        self._frozen = True
        log_event("graph_cleaned", removed_nodes=len(isolated), remaining_nodes=len(self._nodes))
        return len(isolated)

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ---- queries ----------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def node(self, node_id: int) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise QueryError(
                "unknown_node",
                f"node {node_id} is not in the graph",
                details={"node_id": node_id},
            ) from None

    def vertices(self) -> list[int]:
        return list(self._nodes)

    def adjacent(self, node_id: int) -> list[int]:
        self.node(node_id)
        return list(self._neighbors.get(node_id, ()))

    def lon(self, node_id: int) -> float:
        return self.node(node_id).lon

    def lat(self, node_id: int) -> float:
        return self.node(node_id).lat

    def distance(self, a: int, b: int) -> float:
        na, nb = self.node(a), self.node(b)
        return distance_miles(na.lon, na.lat, nb.lon, nb.lat)

    def bearing(self, a: int, b: int) -> float:
        na, nb = self.node(a), self.node(b)
        return bearing_deg(na.lon, na.lat, nb.lon, nb.lat)

    def closest(self, lon: float, lat: float) -> int | None:
        """Id of the node nearest to (lon, lat); first in insertion order on ties."""
        best_id: int | None = None
        best = float("inf")
        for node in self._nodes.values():
            d = distance_miles(lon, lat, node.lon, node.lat)
            if d < best:
                best = d
                best_id = node.id
        return best_id

    def find_edge(self, a: int, b: int) -> Edge | None:
        for edge in self._edges.get(a, ()):
            if edge.touches(b) and edge.other(a) == b:
                return edge
        return None

    @property
    def heuristic_scale(self) -> float:
        """Factor in [0, 1] that keeps ``distance(n, goal) * scale`` a lower bound on road cost."""
        return self._min_weight_ratio

    def edge_count(self) -> int:
        seen: set[int] = set()
        for edges in self._edges.values():
            seen.update(id(edge) for edge in edges)
        return len(seen)
