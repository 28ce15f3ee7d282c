import logging

from empowerher import canvas, http
from empowerher.config import IP_GEOLOCATION_URL
from empowerher.errors import GeolocationError, SafePathError, ServiceError
from empowerher.models import Fix

logger = logging.getLogger(__name__)

# Watch options: fresh fixes only, bounded wait.
WATCH_OPTIONS = {"enable_high_accuracy": True, "maximum_age": 0, "timeout": 10000}
ONE_SHOT_OPTIONS = {"enable_high_accuracy": True, "maximum_age": 0, "timeout": 10000}
IP_FIX_ACCURACY = 5000.0  # meters; city-level at best

USER_MARKER_COLOR = "#3388ff"


class GeolocationProvider:
    """Platform geolocation surface (one-shot + watch)."""

    def current_position(self, options):
        raise NotImplementedError

    def watch_position(self, on_fix, on_error, options):
        raise NotImplementedError

    def clear_watch(self, watch_id):
        raise NotImplementedError


class UnavailableGeolocation(GeolocationProvider):
    """No device geolocation at all; every request fails straight away."""

    def current_position(self, options):
        raise GeolocationError("Geolocation is not supported")

    def watch_position(self, on_fix, on_error, options):
        on_error(GeolocationError("Geolocation is not supported"))
        return None

    def clear_watch(self, watch_id):
        pass


class ReportedPosition(GeolocationProvider):
    """A position the client sent along with the request."""

    def __init__(self, latitude, longitude, accuracy=50.0):
        self.fix = Fix(float(latitude), float(longitude), float(accuracy))

    def current_position(self, options):
        return self.fix

    def watch_position(self, on_fix, on_error, options):
        on_fix(self.fix)
        return 1

    def clear_watch(self, watch_id):
        pass


def ip_geolocate(ip=None):
    """Coarse fix from an IP-location service answering with "lat,lon"."""
    url = f"{IP_GEOLOCATION_URL}/{ip}/loc" if ip else f"{IP_GEOLOCATION_URL}/loc"
    text = http.get_text(url).strip()
    try:
        lat, lon = (float(v) for v in text.split(","))
    except ValueError as e:
        raise ServiceError(f"Unexpected IP location {text!r}", url=url) from e
    return Fix(lat, lon, IP_FIX_ACCURACY, approximate=True)


class LocationTracker:
    """
    Keeps the user's position fresh and owns the user marker plus its
    accuracy circle. Each new fix replaces the previous overlays; platform
    failures fall back to a coarser IP-based fix.
    """

    def __init__(self, provider=None, map_view=None, ip=None):
        self.provider = provider or UnavailableGeolocation()
        self.map_view = map_view
        self.ip = ip
        self.last_fix = None
        self.watch_id = None
        self.tracking = False
        self._starting = False
        self._start_fell_back = False
        self._marker = None
        self._accuracy = None

    def attach(self, map_view):
        self.map_view = map_view

    def start_tracking(self):
        if self.tracking:
            return
        self.tracking = True
        self._starting = True
        self._start_fell_back = False
        try:
            try:
                self._on_fix(self.provider.current_position(ONE_SHOT_OPTIONS))
            except GeolocationError as e:
                self._on_error(e)
            try:
                self.watch_id = self.provider.watch_position(self._on_fix, self._on_error, WATCH_OPTIONS)
            except GeolocationError as e:
                self._on_error(e)
        finally:
            self._starting = False

    def get_current_position(self):
        if self.last_fix is not None:
            return self.last_fix
        try:
            fix = self.provider.current_position(ONE_SHOT_OPTIONS)
        except GeolocationError as e:
            logger.warning("Geolocation failed (%s), trying IP lookup", e)
            try:
                fix = ip_geolocate(self.ip)
            except SafePathError as ip_error:
                logger.error("IP geolocation failed: %s", ip_error)
                return None
        self.last_fix = fix
        return fix

    def stop_tracking(self):
        if self.watch_id is not None:
            self.provider.clear_watch(self.watch_id)
            self.watch_id = None
        self.tracking = False
        self._clear_overlays()

    def _on_fix(self, fix):
        self.last_fix = fix
        self._draw(fix)

    def _on_error(self, error):
        if self._starting and self._start_fell_back:
            # this start already fell back to IP
            logger.info("Geolocation error (%s), keeping approximate location", error)
            return
        logger.warning("Geolocation error (%s), falling back to IP location", error)
        try:
            self._on_fix(ip_geolocate(self.ip))
            self._start_fell_back = self._starting
        except SafePathError as e:
            logger.error("IP geolocation failed: %s", e)

    def _canvas(self):
        return self.map_view.canvas if self.map_view is not None else None

    def _clear_overlays(self):
        map_canvas = self._canvas()
        if map_canvas is not None:
            for layer in (self._marker, self._accuracy):
                if layer is not None:
                    map_canvas.remove(layer)
        self._marker = None
        self._accuracy = None

    def _draw(self, fix):
        map_canvas = self._canvas()
        if map_canvas is None:
            return
        self._clear_overlays()
        popup = "Your approximate location" if fix.approximate else "Your location"
        latlng = (fix.latitude, fix.longitude)
        self._marker = map_canvas.add(canvas.marker(latlng, popup, role="user"))
        self._accuracy = map_canvas.add(canvas.circle(latlng, fix.accuracy, USER_MARKER_COLOR,
                                                      fill_opacity=0.15, role="accuracy"))
