# ---------------------------------------------------------
#  EmpowerHer SafePath - Configuration File
#
#  Values come from the environment (or a local .env file).
#  Every key has a working default for local development.
# ---------------------------------------------------------

import os

from dotenv import load_dotenv

load_dotenv()

# JWT secret (change this to a long random string for production)
JWT_SECRET = os.getenv("JWT_SECRET", "SUPER_SECRET_JWT_KEY_CHANGE_THIS")
JWT_EXPIRY_HOURS = int(os.getenv("JWT_EXPIRY_HOURS", "24"))

# SQLite database filename (keeps DB local)
DATABASE_NAME = os.getenv("DATABASE_NAME", "empowerher.db")

# Flask server settings
FLASK_PORT = int(os.getenv("FLASK_PORT", "5000"))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Public OpenStreetMap services (no key required)
NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
OSRM_URL = os.getenv("OSRM_URL", "https://router.project-osrm.org/route/v1")
OSRM_FALLBACK_URL = os.getenv("OSRM_FALLBACK_URL", "https://routing.openstreetmap.de/routed-car/route/v1")
OSRM_PROFILE = os.getenv("OSRM_PROFILE", "driving")
IP_GEOLOCATION_URL = os.getenv("IP_GEOLOCATION_URL", "https://ipinfo.io")

# Outbound HTTP
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "6"))
USER_AGENT = os.getenv("USER_AGENT", "EmpowerHer-SafePath/1.0 (+https://empowerher.app)")

# Transactional email (Resend) - SOS emails are skipped with an error if unset
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
SOS_EMAIL_SENDER = os.getenv("SOS_EMAIL_SENDER", "EmpowerHer SOS <onboarding@resend.dev>")
SOS_EMAIL_FUNCTION_URL = os.getenv("SOS_EMAIL_FUNCTION_URL", "http://localhost:5000/functions/v1/send-sos-email")
SOS_COOLDOWN_SECONDS = float(os.getenv("SOS_COOLDOWN_SECONDS", "30"))
SOS_MAX_WORKERS = int(os.getenv("SOS_MAX_WORKERS", "8"))

# Map defaults (Coimbatore, where the static safety zones live)
DEFAULT_MAP_CENTER = (11.0168, 76.9558)
DEFAULT_MAP_ZOOM = 12
TILE_URL = os.getenv("TILE_URL", "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png")
TILE_ATTRIBUTION = '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
