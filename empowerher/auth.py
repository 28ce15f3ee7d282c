import datetime
import logging

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from empowerher.config import JWT_EXPIRY_HOURS, JWT_SECRET
from empowerher.database import get_db
from empowerher.errors import AuthError, ValidationError
from empowerher.models import User

logger = logging.getLogger(__name__)


# -----------------------
# JWT helpers
# -----------------------
def generate_token(user_id, hours=None, secret=None):
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "user_id": user_id,
        "exp": now + datetime.timedelta(hours=hours or JWT_EXPIRY_HOURS),
        "iat": now,
    }
    return jwt.encode(payload, secret or JWT_SECRET, algorithm="HS256")


def decode_token(token, secret=None):
    try:
        return jwt.decode(token, secret or JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError:
        return None


def bearer_token(header):
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


# -----------------------
# User accounts
# -----------------------
def get_user(user_id, database_name=None):
    conn = get_db(database_name)
    cur = conn.cursor()
    cur.execute("SELECT id, email, name FROM users WHERE id = ?", (user_id,))
    row = cur.fetchone()
    conn.close()
    return User.from_row(row) if row else None


def user_for_token(token, database_name=None, secret=None):
    payload = decode_token(token, secret) if token else None
    if not payload or not payload.get("user_id"):
        return None
    return get_user(payload["user_id"], database_name)


def register_user(email, password, name="", database_name=None):
    if not email or not password:
        raise ValidationError("Email and password required")
    conn = get_db(database_name)
    cur = conn.cursor()
    cur.execute("SELECT id FROM users WHERE email = ?", (email,))
    if cur.fetchone():
        conn.close()
        raise ValidationError("Email already registered")
    cur.execute("INSERT INTO users (email, password_hash, name) VALUES (?, ?, ?)",
                (email, generate_password_hash(password), name or None))
    conn.commit()
    user_id = cur.lastrowid
    conn.close()
    logger.info("Registered user %s", user_id)
    return User(id=user_id, email=email, name=name or None)


def authenticate(email, password, database_name=None):
    if not email or not password:
        raise ValidationError("Email and password required")
    conn = get_db(database_name)
    cur = conn.cursor()
    cur.execute("SELECT id, email, password_hash, name FROM users WHERE email = ?", (email,))
    row = cur.fetchone()
    conn.close()
    if not row or not check_password_hash(row["password_hash"], password):
        raise AuthError("Invalid credentials")
    return User.from_row(row)


class AuthSession:
    """
    Client-side session: the signed-in user plus a token, with auth-state
    subscribers notified as ("SIGNED_IN", user) / ("SIGNED_OUT", None).
    """

    def __init__(self, database_name=None):
        self.database_name = database_name
        self.user = None
        self.token = None
        self._subscribers = []

    def get_session(self):
        if self.user is None:
            return None
        return {"user": self.user, "access_token": self.token}

    def on_auth_state_change(self, callback):
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _emit(self, event):
        for callback in list(self._subscribers):
            callback(event, self.user)

    def sign_up(self, email, password, name=""):
        user = register_user(email, password, name, self.database_name)
        return self._signed_in(user)

    def sign_in(self, email, password):
        return self._signed_in(authenticate(email, password, self.database_name))

    def restore(self, token):
        """Resume a session from a stored token; False if it is no longer valid."""
        user = user_for_token(token, self.database_name)
        if user is None:
            return False
        self.user, self.token = user, token
        self._emit("SIGNED_IN")
        return True

    def sign_out(self):
        if self.user is None:
            return
        self.user = None
        self.token = None
        self._emit("SIGNED_OUT")

    def _signed_in(self, user):
        self.user = user
        self.token = generate_token(user.id)
        self._emit("SIGNED_IN")
        return user
