from __future__ import annotations

import heapq
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from math import inf
from typing import Literal

from .graph import RoadGraph
from .logging_utils import log_event
from .settings import settings

RouteStatus = Literal["ok", "no_route", "search_aborted"]
Heuristic = Callable[[int, int], float]


@dataclass(frozen=True)
class RouteResult:
    status: RouteStatus
    nodes: tuple[int, ...] = ()
    cost: float = 0.0
    explored: int = 0
    detail: str = ""

    @property
    def found(self) -> bool:
        return self.status == "ok"


class NoRouteError(LookupError):
    pass


class SearchAbortedError(RuntimeError):
    pass


def _edge_weight(graph: RoadGraph, u: int, v: int) -> float:
    edge = graph.find_edge(u, v)
    if edge is not None:
        return edge.weight
    # Adjacency registered without an explicit edge: weight is the straight-line leg.
    return graph.distance(u, v)


def _astar_search(
    *,
    graph: RoadGraph,
    start: int,
    goal: int,
    heuristic: Heuristic | None,
    max_explored: int | None,
    deadline_monotonic_s: float | None,
    explored_counter: list[int],
) -> tuple[tuple[int, ...], float]:
    # Per-call scratch state: nothing here outlives the search.
    dist_to: dict[int, float] = {start: 0.0}
    edge_to: dict[int, int] = {}
    seen: set[int] = set()
    h_cache: dict[int, float] = {}

    def h(node_id: int) -> float:
        if heuristic is None:
            return 0.0
        value = h_cache.get(node_id)
        if value is None:
            value = heuristic(node_id, goal)
            h_cache[node_id] = value
        return value

    # (priority, node id); equal priorities resolve to the smaller id.
    frontier: list[tuple[float, int]] = [(h(start), start)]
    while frontier:
        if deadline_monotonic_s is not None and time.monotonic() >= deadline_monotonic_s:
            raise SearchAbortedError("search deadline exceeded")
        _, node = heapq.heappop(frontier)
        if node == goal:
            break
        if node in seen:
            continue
        if max_explored is not None and explored_counter[0] >= max_explored:
            raise SearchAbortedError("explored node budget exceeded")
        seen.add(node)
        explored_counter[0] += 1
        base = dist_to[node]
        for nxt in graph.adjacent(node):
            if nxt in seen:
                continue
            new_cost = base + _edge_weight(graph, node, nxt)
            if new_cost < dist_to.get(nxt, inf):
                dist_to[nxt] = new_cost
                edge_to[nxt] = node
                heapq.heappush(frontier, (new_cost + h(nxt), nxt))
    else:
        raise NoRouteError("no path")

    path = [goal]
    while path[-1] != start:
        path.append(edge_to[path[-1]])
    path.reverse()
    return tuple(path), dist_to[goal]


def astar(
    graph: RoadGraph,
    start: int,
    goal: int,
    *,
    heuristic: Heuristic | None = None,
    max_explored: int | None = None,
    deadline_monotonic_s: float | None = None,
) -> RouteResult:
    """Minimum-weight path between two node ids.

    ``heuristic`` defaults to the great-circle distance to the goal scaled by
    ``graph.heuristic_scale``, which never exceeds the remaining path weight
    and so keeps A* optimal. Pass ``lambda u, g: 0.0`` for plain Dijkstra.
    """
    graph.node(start)
    graph.node(goal)
    if heuristic is None:
        scale = graph.heuristic_scale

        def _scaled_distance(node_id: int, goal_id: int) -> float:
            return graph.distance(node_id, goal_id) * scale

        heuristic = _scaled_distance

    explored_counter = [0]
    try:
        nodes, cost = _astar_search(
            graph=graph,
            start=start,
            goal=goal,
            heuristic=heuristic,
            max_explored=max_explored,
            deadline_monotonic_s=deadline_monotonic_s,
            explored_counter=explored_counter,
        )
    except NoRouteError as exc:
        return RouteResult(status="no_route", explored=explored_counter[0], detail=str(exc))
    except SearchAbortedError as exc:
        return RouteResult(status="search_aborted", explored=explored_counter[0], detail=str(exc))
    return RouteResult(status="ok", nodes=nodes, cost=cost, explored=explored_counter[0])


def shortest_path(
    graph: RoadGraph,
    start_lon: float,
    start_lat: float,
    dest_lon: float,
    dest_lat: float,
    *,
    max_explored: int | None = None,
    deadline_ms: float | None = None,
) -> RouteResult:
    """Route between the graph nodes closest to two coordinates.

    Budgets default to ``ROUTE_MAX_EXPLORED_NODES`` / ``ROUTE_SEARCH_DEADLINE_MS``.
    """
    t0 = time.monotonic()
    source = graph.closest(start_lon, start_lat)
    goal = graph.closest(dest_lon, dest_lat)
    if source is None or goal is None:
        log_event("route_not_found", reason="empty_graph")
        return RouteResult(status="no_route", detail="graph has no nodes")

    if max_explored is None:
        max_explored = int(settings.route_max_explored_nodes)
    if deadline_ms is None:
        deadline_ms = float(settings.route_search_deadline_ms)
    deadline = t0 + (deadline_ms / 1000.0) if deadline_ms and deadline_ms > 0 else None

    result = astar(
        graph,
        source,
        goal,
        max_explored=max_explored,
        deadline_monotonic_s=deadline,
    )
    elapsed_ms = round((time.monotonic() - t0) * 1000.0, 3)
    if result.status == "ok":
        log_event(
            "route_computed",
            source=source,
            goal=goal,
            hops=len(result.nodes),
            cost_miles=round(result.cost, 6),
            explored=result.explored,
            elapsed_ms=elapsed_ms,
        )
    elif result.status == "no_route":
        log_event("route_not_found", source=source, goal=goal, explored=result.explored, elapsed_ms=elapsed_ms)
    else:
        log_event(
            "route_search_aborted",
            level=logging.WARNING,
            source=source,
            goal=goal,
            explored=result.explored,
            detail=result.detail,
            elapsed_ms=elapsed_ms,
        )
    return result
