from __future__ import annotations

import math

EARTH_RADIUS_MILES = 3963.0


def distance_miles(lon_a: float, lat_a: float, lon_b: float, lat_b: float) -> float:
    """Great-circle (haversine) distance in miles between two lon/lat points."""
    phi1 = math.radians(lat_a)
    phi2 = math.radians(lat_b)
    dphi = math.radians(lat_b - lat_a)
    dlambda = math.radians(lon_b - lon_a)
    a = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_MILES * 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def bearing_deg(lon_a: float, lat_a: float, lon_b: float, lat_b: float) -> float:
    """Initial great-circle bearing from A toward B, in degrees within (-180, 180]."""
    phi1 = math.radians(lat_a)
    phi2 = math.radians(lat_b)
    dlambda = math.radians(lon_b - lon_a)
    y = math.sin(dlambda) * math.cos(phi2)
    x = (math.cos(phi1) * math.sin(phi2)) - (math.sin(phi1) * math.cos(phi2) * math.cos(dlambda))
    bearing = math.degrees(math.atan2(y, x))
    if bearing <= -180.0:
        bearing += 360.0
    return bearing


def bearing_change_deg(before: float, after: float) -> float:
    """Signed heading change from ``before`` to ``after``; positive turns clockwise (right)."""
    delta = (float(after) - float(before)) % 360.0
    if delta > 180.0:
        delta -= 360.0
    return delta
