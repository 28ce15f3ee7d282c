from types import SimpleNamespace

import pytest

from empowerher import canvas, http
from empowerher import tracker as tracker_module
from empowerher.errors import GeolocationError, ServiceError
from empowerher.models import Fix
from empowerher.tracker import LocationTracker, ip_geolocate
from tests.conftest import build_map


class FakeProvider:
    def __init__(self, fix=None, fail=False):
        self.fix = fix
        self.fail = fail
        self.watches = {}
        self.cleared = []
        self.one_shot_calls = 0
        self.options = []

    def current_position(self, options):
        self.one_shot_calls += 1
        self.options.append(options)
        if self.fail:
            raise GeolocationError("permission denied")
        return self.fix

    def watch_position(self, on_fix, on_error, options):
        watch_id = len(self.watches) + 1
        self.watches[watch_id] = (on_fix, on_error, options)
        return watch_id

    def clear_watch(self, watch_id):
        self.cleared.append(watch_id)


def user_overlays(map_view):
    return [l for l in map_view.canvas.layers() if l.options.get("role") in ("user", "accuracy")]


@pytest.fixture
def ip_fix(monkeypatch):
    fix = Fix(11.0, 76.96, tracker_module.IP_FIX_ACCURACY, approximate=True)
    calls = []

    def fake_ip(ip=None):
        calls.append(ip)
        return fix

    monkeypatch.setattr(tracker_module, "ip_geolocate", fake_ip)
    return SimpleNamespace(fix=fix, calls=calls)


def test_start_tracking_takes_a_fix_then_watches():
    provider = FakeProvider(Fix(11.01, 76.95, 12.0))
    tracker = LocationTracker(provider)
    map_view = build_map(tracker=tracker)

    tracker.start_tracking()

    assert provider.one_shot_calls == 1
    assert tracker.watch_id == 1
    options = provider.watches[1][2]
    assert options["enable_high_accuracy"] is True
    assert options["maximum_age"] == 0
    assert options["timeout"] > 0
    assert len(user_overlays(map_view)) == 2


def test_each_fix_replaces_the_previous_overlays():
    provider = FakeProvider(Fix(11.01, 76.95, 12.0))
    tracker = LocationTracker(provider)
    map_view = build_map(tracker=tracker)
    tracker.start_tracking()
    on_fix = provider.watches[1][0]
    first = user_overlays(map_view)

    for i in range(3):
        on_fix(Fix(11.02 + i * 0.001, 76.96, 8.0))

    overlays = user_overlays(map_view)
    assert len(overlays) == 2
    assert not any(map_view.canvas.has(l) for l in first)
    marker = [l for l in overlays if l.kind == canvas.MARKER][0]
    assert marker.options["latlng"] == pytest.approx([11.022, 76.96])
    assert tracker.last_fix.latitude == pytest.approx(11.022)


def test_platform_failure_falls_back_to_ip(ip_fix):
    provider = FakeProvider(fail=True)
    tracker = LocationTracker(provider, ip="203.0.113.9")
    map_view = build_map(tracker=tracker)

    tracker.start_tracking()

    assert tracker.last_fix is ip_fix.fix
    assert ip_fix.calls == ["203.0.113.9"]
    marker = [l for l in user_overlays(map_view) if l.kind == canvas.MARKER][0]
    assert marker.options["popup"] == "Your approximate location"

    # watch errors fall back too
    on_error = provider.watches[1][1]
    on_error(GeolocationError("timeout"))
    assert len(ip_fix.calls) == 2
    assert len(user_overlays(map_view)) == 2


def test_get_current_position_prefers_cached_fix():
    provider = FakeProvider(Fix(11.01, 76.95, 12.0))
    tracker = LocationTracker(provider)
    cached = Fix(10.0, 77.0, 5.0)
    tracker.last_fix = cached

    assert tracker.get_current_position() is cached
    assert provider.one_shot_calls == 0


def test_get_current_position_one_shot_then_ip(ip_fix):
    assert LocationTracker(FakeProvider(Fix(11.01, 76.95))).get_current_position().latitude == 11.01
    assert LocationTracker(FakeProvider(fail=True)).get_current_position() is ip_fix.fix


def test_get_current_position_returns_none_when_everything_fails(monkeypatch):
    def no_ip(ip=None):
        raise ServiceError("ipinfo down")

    monkeypatch.setattr(tracker_module, "ip_geolocate", no_ip)
    assert LocationTracker(FakeProvider(fail=True)).get_current_position() is None


def test_stop_tracking_is_idempotent_and_safe_before_start():
    provider = FakeProvider(Fix(11.01, 76.95, 12.0))
    tracker = LocationTracker(provider)
    map_view = build_map(tracker=tracker)

    tracker.stop_tracking()  # never started
    tracker.start_tracking()
    tracker.stop_tracking()
    tracker.stop_tracking()

    assert provider.cleared == [1]
    assert user_overlays(map_view) == []
    assert tracker.watch_id is None


def test_tracker_without_map_still_records_fixes():
    tracker = LocationTracker(FakeProvider(Fix(11.01, 76.95, 12.0)))
    tracker.start_tracking()
    assert tracker.last_fix.latitude == 11.01


def test_ip_geolocate_parses_lat_lon_text(monkeypatch):
    urls = []

    def fake_text(url, params=None):
        urls.append(url)
        return "11.0168,76.9558\n"

    monkeypatch.setattr(http, "get_text", fake_text)
    fix = ip_geolocate("198.51.100.7")

    assert (fix.latitude, fix.longitude) == (11.0168, 76.9558)
    assert fix.approximate is True
    assert urls[0].endswith("/198.51.100.7/loc")


def test_ip_geolocate_rejects_garbage(monkeypatch):
    monkeypatch.setattr(http, "get_text", lambda url, params=None: "bogus")
    with pytest.raises(ServiceError):
        ip_geolocate()


def test_unmount_stops_tracking():
    provider = FakeProvider(Fix(11.01, 76.95, 12.0))
    tracker = LocationTracker(provider)
    map_view = build_map(tracker=tracker)
    tracker.start_tracking()

    map_view.unmount()

    assert provider.cleared == [1]
    assert tracker.tracking is False


def test_locate_user_centres_map_on_fix():
    tracker = LocationTracker(FakeProvider(Fix(11.01, 76.95, 12.0)))
    map_view = build_map(tracker=tracker)

    fix = map_view.locate_user()

    assert fix.latitude == 11.01
    assert map_view.canvas.center == (11.01, 76.95)
    assert map_view.notifier.of_level("success")[-1].message == "Location found"


class RaisingWatchProvider(FakeProvider):
    def watch_position(self, on_fix, on_error, options):
        raise GeolocationError("watch not permitted")


def test_unavailable_geolocation_falls_back_to_ip_once_per_start(ip_fix):
    from empowerher.tracker import UnavailableGeolocation

    tracker = LocationTracker(UnavailableGeolocation(), ip="203.0.113.9")
    map_view = build_map(tracker=tracker)

    tracker.start_tracking()

    assert ip_fix.calls == ["203.0.113.9"]
    assert len(user_overlays(map_view)) == 2

    tracker.stop_tracking()
    tracker.start_tracking()
    assert len(ip_fix.calls) == 2


def test_watch_error_raised_synchronously_is_contained(ip_fix):
    provider = RaisingWatchProvider(Fix(11.01, 76.95, 12.0))
    tracker = LocationTracker(provider)

    tracker.start_tracking()

    assert tracker.tracking is True
    assert tracker.watch_id is None
    assert tracker.last_fix is ip_fix.fix
    assert len(ip_fix.calls) == 1
