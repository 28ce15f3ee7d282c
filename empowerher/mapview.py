import logging
from enum import Enum

from empowerher import canvas
from empowerher.config import DEFAULT_MAP_CENTER, DEFAULT_MAP_ZOOM, TILE_ATTRIBUTION, TILE_URL
from empowerher.models import SAFETY_COLORS, SAFETY_LABELS, SAFETY_ZONES, SafetyLevel
from empowerher.navigation import RouteEngine
from empowerher.notifications import Notifier

logger = logging.getLogger(__name__)


class MapState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    IDLE = "idle"
    NAVIGATING = "navigating"
    COMPLETE = "complete"


def draw_safety_zones(map_canvas, zones=SAFETY_ZONES):
    layers = []
    for zone in zones:
        color = SAFETY_COLORS[zone.level]
        layers.append(map_canvas.add(canvas.circle(zone.center, zone.radius, color,
                                                   level=zone.level.value, role="zone")))
    return layers


def safety_legend():
    return [{"level": level.value, "color": SAFETY_COLORS[level], "label": SAFETY_LABELS[level]}
            for level in (SafetyLevel.SAFE, SafetyLevel.MEDIUM_RISK, SafetyLevel.HIGH_RISK)]


class MapView:
    """
    Owns the map canvas and the navigation state:

        uninitialized -> loaded -> (idle <-> navigating) -> complete

    ``complete`` drops back to ``idle`` on the next route calculation.
    """

    def __init__(self, notifier=None, tracker=None, engine_factory=None):
        self.notifier = notifier or Notifier()
        self.tracker = tracker
        if tracker is not None:
            tracker.attach(self)
        self.state = MapState.UNINITIALIZED
        self.canvas = None
        self.controller = None
        self.route = None
        self.directions = []
        self.show_directions = False
        self.engine = (engine_factory or RouteEngine)(self)

    @property
    def is_loaded(self):
        return self.state != MapState.UNINITIALIZED

    @property
    def is_navigating(self):
        return self.state == MapState.NAVIGATING

    @property
    def navigation_complete(self):
        return self.state == MapState.COMPLETE

    def mount(self, controller=None):
        if self.is_loaded:
            return
        self.canvas = canvas.MapCanvas(DEFAULT_MAP_CENTER, DEFAULT_MAP_ZOOM)
        self.canvas.add(canvas.tile_layer(TILE_URL, TILE_ATTRIBUTION))
        draw_safety_zones(self.canvas)
        self.state = MapState.LOADED
        if controller is not None:
            self.controller = controller
            controller.register(self.calculate_route)

    def unmount(self):
        if self.controller is not None:
            self.controller.unregister(self.calculate_route)
            self.controller = None
        if self.tracker is not None:
            self.tracker.stop_tracking()
        self.canvas = None
        self.route = None
        self.directions = []
        self.show_directions = False
        self.state = MapState.UNINITIALIZED

    def calculate_route(self, start, end):
        if not self.is_loaded:
            logger.warning("Route requested before the map was mounted")
            self.notifier.error("Map is not ready yet")
            return None
        if self.state == MapState.COMPLETE:
            self.state = MapState.IDLE
        return self.engine.calculate_route(start, end)

    def start_navigation(self, route, directions):
        self.route = route
        self.directions = directions
        self.show_directions = True
        self.state = MapState.NAVIGATING

    def reset_navigation(self):
        self.route = None
        self.directions = []
        self.show_directions = False
        if self.state in (MapState.NAVIGATING, MapState.LOADED):
            self.state = MapState.IDLE

    def complete_navigation(self):
        if self.state != MapState.NAVIGATING:
            self.notifier.warning("There is no active navigation to complete")
            return False
        self.state = MapState.COMPLETE
        self.notifier.success("Navigation completed! Please submit your feedback.")
        if self.controller is not None:
            self.controller.navigation_completed()
        return True

    def locate_user(self):
        if not self.is_loaded or self.tracker is None:
            return None
        self.tracker.start_tracking()
        fix = self.tracker.last_fix
        if fix is None:
            self.notifier.error("Failed to get your location. Please enable location access.")
            return None
        self.canvas.set_view((fix.latitude, fix.longitude), 16)
        if fix.approximate:
            self.notifier.info("Using approximate location")
        else:
            self.notifier.success("Location found")
        return fix

    def to_dict(self):
        return {
            "state": self.state.value,
            "directions": list(self.directions),
            "show_directions": self.show_directions,
            "map": self.canvas.to_dict() if self.canvas is not None else None,
            "legend": safety_legend(),
        }
