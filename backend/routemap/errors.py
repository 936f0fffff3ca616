from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "invalid_argument",
        "unparseable_direction",
        "no_route",
        "search_aborted",
        "unknown_node",
        "graph_frozen",
        "graph_unavailable",
    }
)


@dataclass
class QueryError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def normalize_reason_code(reason_code: str, *, default: str = "invalid_argument") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default


def error_detail(reason_code: str, message: str, *, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """HTTP error body; unknown codes collapse to ``invalid_argument``."""
    detail: dict[str, Any] = {"reason_code": normalize_reason_code(reason_code), "message": message}
    if details:
        detail["details"] = details
    return detail
