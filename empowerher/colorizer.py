"""
Route coloring by safety level.

There is no per-segment safety data yet, so the route is cut into three
fixed-ratio thirds and each third gets a fixed color. Swap
``color_route_based_on_safety`` for a real classifier once one exists.
"""
import math

from empowerher import canvas
from empowerher.models import SAFETY_COLORS, Location, RouteSegment, SafetyLevel

SEGMENT_LEVELS = (SafetyLevel.SAFE, SafetyLevel.MEDIUM_RISK, SafetyLevel.HIGH_RISK)
EARTH_RADIUS_M = 6371000.0


def split_route_points(points):
    """Contiguous groups of sizes n//3, n//3 and the remainder."""
    points = list(points)
    third = len(points) // 3
    return [points[:third], points[third:2 * third], points[2 * third:]]


def color_route_based_on_safety(map_canvas, route_layer, colors=None):
    """Replace ``route_layer`` with one colored polyline per non-empty third."""
    colors = colors or SAFETY_COLORS
    points = route_layer.options.get("points", [])
    map_canvas.remove(route_layer)
    layers = []
    for level, group in zip(SEGMENT_LEVELS, split_route_points(points)):
        if not group:
            continue
        layer = canvas.polyline(group, colors[level], weight=route_layer.options.get("weight", 5),
                                level=level.value, role="route")
        map_canvas.add(layer)
        layers.append(layer)
    return layers


def path_length(points):
    """Great-circle length of a polyline in meters."""
    total = 0.0
    for (lat1, lon1), (lat2, lon2) in zip(points, points[1:]):
        p1, p2 = math.radians(lat1), math.radians(lat2)
        dp, dl = p2 - p1, math.radians(lon2 - lon1)
        a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
        total += 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))
    return total


def build_segments(points):
    segments = []
    for level, group in zip(SEGMENT_LEVELS, split_route_points(points)):
        if not group:
            continue
        segments.append(RouteSegment(start=Location(*group[0]), end=Location(*group[-1]),
                                     level=level, distance=round(path_length(group), 1)))
    return segments
