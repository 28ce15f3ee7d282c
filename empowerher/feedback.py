import logging

from empowerher.database import get_db
from empowerher.errors import ValidationError
from empowerher.models import SafetyReport

logger = logging.getLogger(__name__)

INCIDENT_TYPES = {
    "harassment": "Harassment",
    "poor_lighting": "Poor Lighting",
    "suspicious_activity": "Suspicious Activity",
    "verbal_abuse": "Verbal Abuse",
    "other": "Other",
}


def validate_report(rating, location, incident_type=None, destination=None, description=None):
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        raise ValidationError("Please provide a rating and location")
    if not isinstance(location, str) or not 1 <= rating <= 5 or not location.strip():
        raise ValidationError("Please provide a rating and location")
    for value in (incident_type, destination, description):
        if value is not None and not isinstance(value, str):
            raise ValidationError("Report fields must be text")
    if incident_type and incident_type not in INCIDENT_TYPES:
        raise ValidationError(f"Unknown incident type: {incident_type}")
    return rating


class ReportStore:
    def __init__(self, database_name=None):
        self.database_name = database_name

    def insert(self, report):
        rating = validate_report(report.rating, report.location, report.incident_type,
                                 report.destination, report.description)
        conn = get_db(self.database_name)
        cur = conn.cursor()
        cur.execute("""
            INSERT INTO safety_reports (user_id, location, destination, latitude, longitude,
                                        rating, incident_type, description)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (report.user_id, report.location.strip(), report.destination or None, report.latitude,
              report.longitude, rating, report.incident_type or None, report.description or None))
        conn.commit()
        new_id = cur.lastrowid
        conn.close()
        logger.info("Saved safety report %s (rating %s)", new_id, rating)
        return new_id

    def list_for_user(self, user_id):
        conn = get_db(self.database_name)
        cur = conn.cursor()
        cur.execute("""
            SELECT id, user_id, location, destination, latitude, longitude, rating,
                   incident_type, description
            FROM safety_reports WHERE user_id = ? ORDER BY id DESC
        """, (user_id,))
        rows = cur.fetchall()
        conn.close()
        return [SafetyReport.from_row(r) for r in rows]
