import logging
from urllib.parse import quote

from empowerher.database import get_db
from empowerher.errors import ValidationError
from empowerher.models import EmergencyContact

logger = logging.getLogger(__name__)


def validate_contact(name, phone, email=None, relation=None):
    if not isinstance(name, str) or not isinstance(phone, str) or not name.strip() or not phone.strip():
        raise ValidationError("Name and phone number are required")
    for value in (email, relation):
        if value is not None and not isinstance(value, str):
            raise ValidationError("Contact email and relation must be text")


def tel_link(phone):
    return f"tel:{quote(phone.strip(), safe='+')}"


def sms_link(phone, body=None):
    link = f"sms:{quote(phone.strip(), safe='+')}"
    return f"{link}?body={quote(body)}" if body else link


def mailto_link(email, subject=None, body=None):
    params = []
    if subject:
        params.append(f"subject={quote(subject)}")
    if body:
        params.append(f"body={quote(body)}")
    return f"mailto:{email}" + (f"?{'&'.join(params)}" if params else "")


class ContactStore:
    """emergency_contacts rows, always scoped to one user."""

    def __init__(self, database_name=None):
        self.database_name = database_name

    def list_for_user(self, user_id):
        conn = get_db(self.database_name)
        cur = conn.cursor()
        cur.execute("SELECT id, user_id, name, phone, email, relation FROM emergency_contacts "
                    "WHERE user_id = ? ORDER BY id", (user_id,))
        rows = cur.fetchall()
        conn.close()
        return [EmergencyContact.from_row(r) for r in rows]

    def has_any(self, user_id):
        conn = get_db(self.database_name)
        cur = conn.cursor()
        cur.execute("SELECT id FROM emergency_contacts WHERE user_id = ? LIMIT 1", (user_id,))
        row = cur.fetchone()
        conn.close()
        return row is not None

    def insert(self, user_id, name, phone, email=None, relation=None):
        validate_contact(name, phone, email, relation)
        conn = get_db(self.database_name)
        cur = conn.cursor()
        cur.execute("INSERT INTO emergency_contacts (user_id, name, phone, email, relation) VALUES (?, ?, ?, ?, ?)",
                    (user_id, name.strip(), phone.strip(), (email or "").strip() or None,
                     (relation or "").strip() or None))
        conn.commit()
        new_id = cur.lastrowid
        conn.close()
        logger.info("Saved emergency contact %s for user %s", new_id, user_id)
        return EmergencyContact(id=new_id, user_id=user_id, name=name.strip(), phone=phone.strip(),
                                email=(email or "").strip() or None, relation=(relation or "").strip() or None)

    def delete(self, user_id, contact_id):
        conn = get_db(self.database_name)
        cur = conn.cursor()
        cur.execute("DELETE FROM emergency_contacts WHERE id = ? AND user_id = ?", (contact_id, user_id))
        conn.commit()
        deleted = cur.rowcount
        conn.close()
        return deleted > 0
