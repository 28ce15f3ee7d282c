from collections import defaultdict

import pytest

from empowerher import canvas
from empowerher.app import create_app
from empowerher.auth import AuthSession, generate_token, register_user
from empowerher.contacts import ContactStore
from empowerher.database import init_db
from empowerher.errors import ServiceError
from empowerher.mapview import MapView
from empowerher.models import Location, Route, RouteStep
from empowerher.navigation import NavigationController, RouteEngine
from empowerher.notifications import Notifier

START = Location(11.0168, 76.9558, "Gandhipuram")
END = Location(11.0268, 76.9658, "RS Puram")


def make_route(start=START, end=END, n_points=10):
    points = [(start.latitude + i * 0.001, start.longitude + i * 0.001) for i in range(n_points)]
    steps = [
        RouteStep("Head north on Cross Cut Road", 1234.0),
        RouteStep("Turn left onto DB Road", 560.0),
        RouteStep("You have arrived at your destination", 0.0),
    ]
    return Route(start=start, end=end, points=points, steps=steps, distance=1794.0, duration=300.0)


class FakeGeocoder:
    def __init__(self, places=None, error=None):
        self.places = places if places is not None else {"Gandhipuram": START, "RS Puram": END}
        self.error = error
        self.calls = []

    def __call__(self, address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        if not address:
            return None
        return self.places.get(address)


class FakeRouter:
    def __init__(self, route=None, error=None):
        self.route = route
        self.error = error
        self.calls = 0

    def __call__(self, start, end):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.route or make_route(start, end)


class FakeControl:
    """Stands in for RoutingControl; answers with a canned route or an error."""

    def __init__(self, waypoints, route=None):
        self.waypoints = waypoints
        self.canned = route
        self.layer = canvas.Layer(canvas.CONTROL, {"waypoints": [list(w.latlng) for w in waypoints]})
        self.listeners = defaultdict(list)
        self.route_calls = 0

    def on(self, event, callback):
        self.listeners[event].append(callback)
        return self

    def route(self):
        self.route_calls += 1
        if self.canned is None:
            for cb in self.listeners["routingerror"]:
                cb(ServiceError("fallback down"))
            return None
        for cb in self.listeners["routesfound"]:
            cb([self.canned])
        return self.canned


class ControlFactory:
    def __init__(self, route=None):
        self.route = route
        self.created = []

    def __call__(self, waypoints):
        control = FakeControl(waypoints, self.route)
        self.created.append(control)
        return control


class FakeSender:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.payloads = []

    def send(self, payload):
        self.payloads.append(payload)
        if payload["contactEmail"] in self.failing:
            raise ServiceError("mailbox unavailable")
        return {"id": f"email-{len(self.payloads)}"}


def build_map(geocoder=None, router=None, controls=None, tracker=None, controller=None):
    geocoder = geocoder or FakeGeocoder()
    router = router or FakeRouter()
    controls = controls or ControlFactory()
    map_view = MapView(Notifier(), tracker, engine_factory=lambda mv: RouteEngine(
        mv, geocode=geocoder, fetch_route=router, control_factory=controls))
    map_view.mount(controller or NavigationController())
    return map_view


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "empowerher-test.db")
    init_db(path)
    return path


@pytest.fixture
def user(db_path):
    return register_user("asha@example.com", "s3cret-pass", "Asha", db_path)


@pytest.fixture
def contact_store(db_path):
    return ContactStore(db_path)


@pytest.fixture
def auth_session(db_path):
    return AuthSession(db_path)


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def app(db_path, sender):
    app = create_app({"TESTING": True, "DATABASE_NAME": db_path, "SOS_MAILER": sender})
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app, user):
    token = generate_token(user.id, secret=app.config["JWT_SECRET"])
    return {"Authorization": f"Bearer {token}"}
