"""
send-sos-email function.

Accepts ``{userName, contactName, contactEmail, locationLink?, locationName?}``
and sends one HTML alert through the Resend API. Answers ``{success, data}``
or ``{error}``; CORS is fully open (the app applies flask-cors globally).
"""
import logging
from html import escape

from flask import Blueprint, current_app, jsonify, request

from empowerher import http
from empowerher.config import RESEND_API_KEY, RESEND_API_URL, SOS_EMAIL_SENDER
from empowerher.errors import SafePathError, ServiceError

logger = logging.getLogger(__name__)

bp = Blueprint("send_sos_email", __name__)


def render_sos_email(user_name, location_link=None, location_name=None):
    who = escape(user_name or "Someone")
    if location_link:
        location_info = (f'<p>Their current location: <a href="{escape(location_link)}" '
                         f'target="_blank">View on Google Maps</a></p>')
    elif location_name:
        location_info = f"<p>Their last known location: {escape(location_name)}</p>"
    else:
        location_info = "<p>Location information is not available.</p>"

    subject = f"URGENT: {user_name or 'Someone'} needs your help!"
    html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">
          <h1 style="color: #d9534f; text-align: center;">EMERGENCY SOS ALERT</h1>
          <p style="font-size: 16px;"><strong>{who}</strong> has triggered an SOS alert and needs your immediate assistance!</p>
          {location_info}
          <div style="background-color: #f8d7da; border: 1px solid #f5c6cb; color: #721c24; padding: 15px; margin: 20px 0; border-radius: 5px;">
            <p style="margin: 0;"><strong>Please take immediate action:</strong></p>
            <ul>
              <li>Try to contact them immediately</li>
              <li>If you cannot reach them, consider contacting local emergency services</li>
            </ul>
          </div>
          <p style="color: #666; font-size: 12px; text-align: center; margin-top: 30px;">This is an automated emergency alert sent via the EmpowerHer safety app.</p>
        </div>
    """
    return subject, html


class ResendMailer:
    """Sender that talks to the Resend HTTP API directly."""

    def __init__(self, api_key=None, api_url=None, sender=None):
        self.api_key = api_key if api_key is not None else RESEND_API_KEY
        self.api_url = api_url or RESEND_API_URL
        self.sender = sender or SOS_EMAIL_SENDER

    def send(self, payload):
        if not self.api_key:
            raise ServiceError("Email service is not configured")
        subject, html = render_sos_email(payload.get("userName"), payload.get("locationLink"),
                                         payload.get("locationName"))
        return http.post_json(self.api_url,
                              {"from": self.sender, "to": [payload["contactEmail"]],
                               "subject": subject, "html": html},
                              headers={"Authorization": f"Bearer {self.api_key}"})


def get_mailer():
    mailer = current_app.config.get("SOS_MAILER")
    if mailer is None:
        mailer = ResendMailer(current_app.config.get("RESEND_API_KEY"))
    return mailer


@bp.route("/functions/v1/send-sos-email", methods=["POST"])
def send_sos_email():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid JSON body"}), 400
    if not body.get("contactEmail"):
        return jsonify({"error": "Contact email is required"}), 400
    try:
        data = get_mailer().send(body)
    except SafePathError as e:
        logger.error("Error sending email: %s", e.message)
        return jsonify({"error": e.message}), 500
    return jsonify({"success": True, "data": data})
