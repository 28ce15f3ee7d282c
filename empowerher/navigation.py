"""
Route acquisition and the shared navigation controller.

``RouteEngine`` resolves both ends, clears the previous route, then tries
the direct OSRM call and, failing that, an embedded ``RoutingControl``.
``NavigationController`` is the handle that lets the search panel reach the
map's calculator without either one knowing about the other.
"""
import logging

from empowerher import canvas
from empowerher.colorizer import build_segments, color_route_based_on_safety
from empowerher.errors import GeolocationError, LocationNotFound, SafePathError, ServiceError
from empowerher.geocoder import geocode_address
from empowerher.routing import ROUTE_COLOR, RoutingControl, fetch_osrm_route, format_directions

logger = logging.getLogger(__name__)

ROUTE_FAILED_MESSAGE = "Error creating route. Please try again."


class RouteEngine:
    def __init__(self, map_view, geocode=None, fetch_route=None, control_factory=None):
        self.map_view = map_view
        self.geocode = geocode or geocode_address
        self.fetch_route = fetch_route or fetch_osrm_route
        self.control_factory = control_factory or RoutingControl
        self.control = None
        self._layers = []
        self.last_error = None

    @property
    def notifier(self):
        return self.map_view.notifier

    @property
    def route_layers(self):
        return list(self._layers)

    def calculate_route(self, start, end):
        logger.info("Calculating route from %r to %r", start, end)
        self.last_error = None
        start_loc = self._resolve_start(start)
        if start_loc is None:
            return None
        end_loc = self._resolve(end, "Could not find destination location")
        if end_loc is None:
            return None

        self.clear_route()

        try:
            route = self.fetch_route(start_loc, end_loc)
            self._draw(route)
        except SafePathError as e:
            logger.warning("Direct routing failed (%s); falling back to routing control", e)
            route = self._route_with_control(start_loc, end_loc)

        if route is None:
            self.last_error = ServiceError(ROUTE_FAILED_MESSAGE)
            self.clear_route()
            self.map_view.reset_navigation()
            self.notifier.error(ROUTE_FAILED_MESSAGE)
            return None

        self.map_view.start_navigation(route, format_directions(route.steps))
        return route

    def clear_route(self):
        map_canvas = self.map_view.canvas
        for layer in self._layers:
            map_canvas.remove(layer)
        self._layers = []
        if self.control is not None:
            map_canvas.remove(self.control.layer)
            self.control = None

    def _resolve_start(self, start):
        if start and start.strip():
            return self._resolve(start, "Could not find start location")
        tracker = self.map_view.tracker
        fix = tracker.get_current_position() if tracker is not None else None
        if fix is None:
            self._fail(GeolocationError("Could not determine your current location"))
            return None
        return fix.to_location()

    def _resolve(self, text, miss_message):
        try:
            location = self.geocode(text)
        except ServiceError as e:
            self.last_error = e
            self.notifier.error(miss_message, description=e.message)
            return None
        if location is None:
            self._fail(LocationNotFound(miss_message))
            return None
        return location

    def _fail(self, error):
        self.last_error = error
        self.notifier.error(error.message)

    def _route_with_control(self, start, end):
        control = self.control_factory([start, end])
        self.map_view.canvas.add(control.layer)
        self.control = control
        found = []
        control.on("routesfound", lambda routes: found.extend(routes[:1]))
        control.route()
        if not found:
            return None
        self._draw(found[0])
        return found[0]

    def _draw(self, route):
        map_canvas = self.map_view.canvas
        line = map_canvas.add(canvas.polyline(route.points, ROUTE_COLOR, role="route"))
        self._layers.append(line)
        self._layers.append(map_canvas.add(canvas.marker(route.start.latlng, "Start", role="start")))
        self._layers.append(map_canvas.add(canvas.marker(route.end.latlng, "Destination", role="end")))
        map_canvas.fit_bounds(route.points)

        self._layers.remove(line)
        self._layers.extend(color_route_based_on_safety(map_canvas, line))
        route.segments = build_segments(route.points)


class NavigationController:
    """Shared handle to the map's route calculator and navigation events."""

    def __init__(self):
        self._calculator = None
        self._complete_listeners = []

    @property
    def available(self):
        return self._calculator is not None

    def register(self, calculator):
        self._calculator = calculator

    def unregister(self, calculator=None):
        if calculator is None or self._calculator == calculator:
            self._calculator = None

    def calculate_route(self, start, end):
        if self._calculator is None:
            raise ServiceError("Navigation service not available")
        return self._calculator(start, end)

    def on_navigation_complete(self, callback):
        self._complete_listeners.append(callback)

        def unsubscribe():
            if callback in self._complete_listeners:
                self._complete_listeners.remove(callback)
        return unsubscribe

    def navigation_completed(self):
        for callback in list(self._complete_listeners):
            callback()
