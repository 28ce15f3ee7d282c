import logging
from collections import defaultdict

import polyline

from empowerher import canvas, http
from empowerher.config import OSRM_FALLBACK_URL, OSRM_PROFILE, OSRM_URL
from empowerher.errors import RouteNotFound, SafePathError, ServiceError
from empowerher.models import Route, RouteStep

logger = logging.getLogger(__name__)

ROUTE_COLOR = "#8B5CF6"

COMPASS = ("north", "northeast", "east", "southeast", "south", "southwest", "west", "northwest")
ORDINALS = {1: "1st", 2: "2nd", 3: "3rd"}


def _compass(bearing):
    return COMPASS[int(((bearing or 0) + 22.5) // 45) % 8]


def _ordinal(n):
    return ORDINALS.get(n, f"{n}th")


def _onto(name):
    return f" onto {name}" if name else ""


def describe_maneuver(step):
    """
    English text for one OSRM step. Servers that already send an
    ``instruction`` win; otherwise it is built from the maneuver type.
    """
    maneuver = step.get("maneuver") or {}
    if maneuver.get("instruction"):
        return maneuver["instruction"]
    kind = maneuver.get("type", "")
    modifier = maneuver.get("modifier", "")
    name = step.get("name", "")

    if kind == "depart":
        return f"Head {_compass(maneuver.get('bearing_after'))}" + (f" on {name}" if name else "")
    if kind == "arrive":
        return "You have arrived at your destination"
    if kind in ("roundabout", "rotary", "exit roundabout", "exit rotary"):
        exit_no = maneuver.get("exit")
        if exit_no:
            return f"Enter the roundabout and take the {_ordinal(exit_no)} exit" + _onto(name)
        return "Enter the roundabout" + _onto(name)
    if modifier == "uturn":
        return "Make a U-turn" + _onto(name)
    if modifier == "straight" or kind == "new name":
        return "Continue" + (" straight" if modifier == "straight" else "") + _onto(name)
    if kind == "merge":
        return f"Merge {modifier}".rstrip() + _onto(name)
    if kind == "fork":
        return f"Keep {modifier} at the fork".replace("  ", " ") + _onto(name)
    if kind == "on ramp":
        return f"Take the ramp on the {modifier}" + _onto(name)
    if kind == "off ramp":
        return f"Take the exit on the {modifier}" + _onto(name)
    if kind == "end of road":
        return f"Turn {modifier} at the end of the road" + _onto(name)
    if kind == "continue":
        return f"Continue {modifier}".rstrip() + _onto(name)
    if modifier:
        return f"Turn {modifier}" + _onto(name)
    return "Continue" + _onto(name)


def format_directions(steps):
    """One "<instruction> for <km> km" line per maneuver, km to one decimal."""
    return [f"{s.instruction} for {s.distance / 1000:.1f} km" for s in steps]


def _decode_geometry(geometry, geometries):
    if geometries == "polyline":
        return [tuple(p) for p in polyline.decode(geometry)]
    # GeoJSON coordinates are [lon, lat]
    return [(lat, lon) for lon, lat in geometry["coordinates"]]


def fetch_osrm_route(start, end, base_url=None, profile=None, geometries="geojson"):
    """
    Driving route between two Locations with full geometry and step list.
    Raises RouteNotFound when OSRM has no route and ServiceError when the
    service is down or the body is malformed.
    """
    url = (f"{base_url or OSRM_URL}/{profile or OSRM_PROFILE}/"
           f"{start.longitude},{start.latitude};{end.longitude},{end.latitude}")
    data = http.get_json(url, {"overview": "full", "geometries": geometries, "steps": "true"})
    if not isinstance(data, dict):
        raise ServiceError("Unexpected routing response", url=url)
    if data.get("code") != "Ok" or not data.get("routes"):
        raise RouteNotFound(data.get("message") or "No route found")
    try:
        best = data["routes"][0]
        steps = [RouteStep(describe_maneuver(step), float(step.get("distance", 0)))
                 for leg in best.get("legs", []) for step in leg.get("steps", [])]
        return Route(start=start, end=end,
                     points=_decode_geometry(best["geometry"], geometries),
                     steps=steps,
                     distance=float(best.get("distance", 0)),
                     duration=float(best.get("duration", 0)))
    except (KeyError, TypeError, ValueError, IndexError) as e:
        raise ServiceError("Malformed routing response", url=url) from e


class RoutingControl:
    """
    Embedded routing-engine control used when the direct routing call
    fails. It asks a sibling OSRM deployment for the same route (encoded
    polyline geometry) and reports through ``routesfound`` / ``routingerror``
    listeners, the way a map routing widget would.
    """

    def __init__(self, waypoints, service_url=None, profile=None):
        self.waypoints = list(waypoints)
        self.service_url = service_url or OSRM_FALLBACK_URL
        self.profile = profile or OSRM_PROFILE
        self.layer = canvas.Layer(canvas.CONTROL, {
            "waypoints": [list(w.latlng) for w in self.waypoints],
            "service_url": self.service_url,
            "line_color": ROUTE_COLOR,
            "show": False,
        })
        self._listeners = defaultdict(list)

    def on(self, event, callback):
        self._listeners[event].append(callback)
        return self

    def _fire(self, event, payload):
        for callback in list(self._listeners[event]):
            callback(payload)

    def route(self):
        start, end = self.waypoints[0], self.waypoints[-1]
        try:
            found = fetch_osrm_route(start, end, base_url=self.service_url,
                                     profile=self.profile, geometries="polyline")
        except SafePathError as e:
            logger.error("Routing control failed: %s", e)
            self._fire("routingerror", e)
            return None
        self._fire("routesfound", [found])
        return found
