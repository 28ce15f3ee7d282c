# ---------------------------------------------------------
# EmpowerHer SafePath - Backend API
# ---------------------------------------------------------
import logging
import sqlite3

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from empowerher import config, email_function
from empowerher.auth import authenticate, bearer_token, generate_token, register_user, user_for_token
from empowerher.contacts import ContactStore
from empowerher.database import init_db
from empowerher.errors import SafePathError, ValidationError
from empowerher.feedback import ReportStore
from empowerher.geocoder import geocode_address, reverse_geocode
from empowerher.mapview import MapView, safety_legend
from empowerher.models import SAFETY_ZONES, SafetyReport
from empowerher.navigation import NavigationController, RouteEngine
from empowerher.notifications import Notifier
from empowerher.sos import SOSDispatcher, location_link
from empowerher.tracker import LocationTracker, ReportedPosition, UnavailableGeolocation

logger = logging.getLogger(__name__)


def configure_logging(level=None):
    logging.basicConfig(level=level or config.LOG_LEVEL,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def error_response(message, status):
    return jsonify({"success": False, "error": message}), status


def database_name():
    return current_app.config["DATABASE_NAME"]


def get_current_user():
    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return None
    return user_for_token(token, database_name(), current_app.config["JWT_SECRET"])


def reported_position(current):
    """Geolocation provider for the position a client sent, if any."""
    if not isinstance(current, dict) or current.get("lat") is None or current.get("lng") is None:
        return UnavailableGeolocation()
    try:
        return ReportedPosition(current["lat"], current["lng"], current.get("accuracy") or 50.0)
    except (TypeError, ValueError):
        raise ValidationError("current must be numeric lat/lng")


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.update(
        DATABASE_NAME=config.DATABASE_NAME,
        JWT_SECRET=config.JWT_SECRET,
        RESEND_API_KEY=config.RESEND_API_KEY,
        SOS_MAILER=None,
        ROUTE_ENGINE_OPTIONS={},
    )
    app.config.update(overrides or {})
    CORS(app)

    # Initialize DB (creates tables if not present)
    init_db(app.config["DATABASE_NAME"])

    app.register_blueprint(email_function.bp)
    register_routes(app)
    return app


def register_routes(app):

    @app.errorhandler(SafePathError)
    def handle_app_error(e):
        return error_response(e.message, e.status_code)

    @app.errorhandler(sqlite3.Error)
    def handle_db_error(e):
        logger.error("Database error: %s", e)
        return error_response("Database error", 500)

    # -----------------------
    # Authentication endpoints
    # -----------------------

    @app.route("/api/register", methods=["POST"])
    def register():
        data = request.get_json(silent=True) or {}
        user = register_user(data.get("email"), data.get("password"), data.get("name", ""), database_name())
        token = generate_token(user.id, secret=current_app.config["JWT_SECRET"])
        return jsonify({"success": True, "token": token, "user": user.to_dict()}), 201

    @app.route("/api/login", methods=["POST"])
    def login():
        data = request.get_json(silent=True) or {}
        user = authenticate(data.get("email"), data.get("password"), database_name())
        token = generate_token(user.id, secret=current_app.config["JWT_SECRET"])
        return jsonify({"success": True, "token": token, "user": user.to_dict()})

    @app.route("/api/me", methods=["GET"])
    def me():
        user = get_current_user()
        if not user:
            return error_response("Unauthorized", 401)
        return jsonify({"success": True, "user": user.to_dict()})

    # -----------------------
    # Emergency contacts endpoints
    # -----------------------

    @app.route("/api/contacts", methods=["GET", "POST", "DELETE"])
    def contacts():
        user = get_current_user()
        if not user:
            return error_response("Unauthorized", 401)
        store = ContactStore(database_name())

        if request.method == "GET":
            return jsonify([c.to_dict() for c in store.list_for_user(user.id)])

        data = request.get_json(silent=True) or {}
        if request.method == "POST":
            contact = store.insert(user.id, data.get("name"), data.get("phone"),
                                   data.get("email"), data.get("relation"))
            return jsonify({"success": True, "id": contact.id, "contact": contact.to_dict()}), 201

        cid = data.get("id")
        if not cid:
            return error_response("Contact id required", 400)
        if not store.delete(user.id, cid):
            return error_response("Contact not found", 404)
        return jsonify({"success": True})

    # -----------------------
    # SOS endpoint (email fan-out)
    # -----------------------

    @app.route("/api/sos", methods=["POST"])
    def sos():
        user = get_current_user()
        if not user:
            return error_response("Unauthorized", 401)
        data = request.get_json(silent=True) or {}
        lat, lng = data.get("lat"), data.get("lng")

        contacts = ContactStore(database_name()).list_for_user(user.id)
        if not contacts:
            return error_response("No emergency contacts found", 400)

        link = name = None
        if lat is not None and lng is not None:
            link = location_link(lat, lng)
            try:
                name = reverse_geocode(lat, lng)
            except SafePathError as e:
                logger.warning("Reverse geocoding failed for SOS: %s", e)

        mailer = email_function.get_mailer()
        result = SOSDispatcher(mailer).dispatch(user, contacts, link, name)
        body = {"success": result.sent_count > 0}
        body.update(result.to_dict())
        return jsonify(body)

    # -----------------------
    # Post-trip feedback
    # -----------------------

    @app.route("/api/feedback", methods=["GET", "POST"])
    def feedback():
        user = get_current_user()
        store = ReportStore(database_name())
        if request.method == "GET":
            if not user:
                return error_response("Unauthorized", 401)
            return jsonify([r.to_dict() for r in store.list_for_user(user.id)])

        data = request.get_json(silent=True) or {}
        report = SafetyReport(location=data.get("location") or "", rating=data.get("rating"),
                              user_id=user.id if user else None,
                              destination=data.get("destination"),
                              incident_type=data.get("incident_type"),
                              description=data.get("description"),
                              latitude=data.get("latitude"), longitude=data.get("longitude"))
        return jsonify({"success": True, "id": store.insert(report)}), 201

    # -----------------------
    # Geocoding / Routing
    # -----------------------

    @app.route("/api/geocode", methods=["GET"])
    def geocode():
        q = request.args.get("q", "")
        if not q.strip():
            return error_response("Missing address text", 400)
        location = geocode_address(q)
        if location is None:
            return error_response("Location not found", 404)
        return jsonify({"success": True, "lat": location.latitude, "lon": location.longitude,
                        "address": location.address})

    @app.route("/api/reverse-geocode", methods=["GET"])
    def reverse():
        lat = request.args.get("lat", type=float)
        lon = request.args.get("lon", type=float)
        if lat is None or lon is None:
            raise ValidationError("lat and lon are required")
        return jsonify({"success": True, "name": reverse_geocode(lat, lon)})

    @app.route("/api/calculate-route", methods=["POST"])
    def calculate_route():
        data = request.get_json(silent=True) or {}
        start_text = data.get("start") or ""
        end_text = data.get("end") or ""
        if not end_text.strip():
            return error_response("Please enter a destination", 400)

        provider = reported_position(data.get("current"))
        tracker = LocationTracker(provider, ip=request.remote_addr)

        notifier = Notifier()
        options = current_app.config["ROUTE_ENGINE_OPTIONS"]
        map_view = MapView(notifier, tracker,
                           engine_factory=lambda mv: RouteEngine(mv, **options))
        controller = NavigationController()
        map_view.mount(controller)
        route = controller.calculate_route(start_text, end_text)
        notes = [n.to_dict() for n in notifier.drain()]
        if route is None:
            failure = map_view.engine.last_error
            errors = [n["message"] for n in notes if n["level"] == "error"]
            message = errors[0] if errors else "Route not found"
            status = failure.status_code if failure is not None else 400
            return jsonify({"success": False, "error": message, "notifications": notes}), status
        state = map_view.to_dict()
        return jsonify({
            "success": True,
            "directions": state["directions"],
            "route": route.to_dict(),
            "map": state["map"],
            "notifications": notes,
        })

    @app.route("/api/safety-zones", methods=["GET"])
    def safety_zones():
        return jsonify({"zones": [z.to_dict() for z in SAFETY_ZONES], "legend": safety_legend()})

    # -----------------------
    # Root endpoint
    # -----------------------

    @app.route("/")
    def home():
        return jsonify({"message": "EmpowerHer SafePath backend is running"})


def main():
    configure_logging()
    app = create_app()
    app.run(host="0.0.0.0", port=config.FLASK_PORT, debug=config.FLASK_DEBUG)


if __name__ == "__main__":
    main()
