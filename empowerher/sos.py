"""
SOS fan-out: one email per emergency contact, sent concurrently, with the
outcome counted rather than retried.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from empowerher import http
from empowerher.config import SOS_EMAIL_FUNCTION_URL, SOS_MAX_WORKERS
from empowerher.errors import SafePathError, ServiceError, ValidationError

logger = logging.getLogger(__name__)


def location_link(latitude, longitude):
    return f"https://www.google.com/maps?q={latitude},{longitude}"


def sos_payload(user_name, contact, link=None, name=None):
    payload = {"userName": user_name, "contactName": contact.name, "contactEmail": contact.email}
    if link:
        payload["locationLink"] = link
    if name:
        payload["locationName"] = name
    return payload


@dataclass
class SOSResult:
    sent: list = field(default_factory=list)
    failed: list = field(default_factory=list)  # (contact, reason)

    @property
    def sent_count(self):
        return len(self.sent)

    @property
    def failed_count(self):
        return len(self.failed)

    @property
    def summary(self):
        return f"{self.sent_count} sent / {self.failed_count} failed"

    def to_dict(self):
        return {
            "sent": self.sent_count,
            "failed": self.failed_count,
            "summary": self.summary,
            "sent_to": [c.name for c in self.sent],
            "errors": [{"contact": c.name, "error": reason} for c, reason in self.failed],
        }


class EmailFunctionClient:
    """Sender that goes through the send-sos-email function endpoint."""

    def __init__(self, url=None):
        self.url = url or SOS_EMAIL_FUNCTION_URL

    def send(self, payload):
        body = http.post_json(self.url, payload)
        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise ServiceError(error or "Email function did not confirm the send", url=self.url)
        return body.get("data")


class SOSDispatcher:
    def __init__(self, sender=None, max_workers=None):
        self.sender = sender or EmailFunctionClient()
        self.max_workers = max_workers or SOS_MAX_WORKERS

    def _send_one(self, user_name, contact, link, name):
        if not contact.email:
            raise ValidationError(f"{contact.name} has no email address")
        return self.sender.send(sos_payload(user_name, contact, link, name))

    def dispatch(self, user, contacts, link=None, name=None):
        result = SOSResult()
        if not contacts:
            return result
        user_name = user.display_name if user is not None else "Someone"
        workers = min(self.max_workers, len(contacts))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self._send_one, user_name, c, link, name): c for c in contacts}
            for future in as_completed(futures):
                contact = futures[future]
                try:
                    future.result()
                except SafePathError as e:
                    logger.warning("SOS email to %s failed: %s", contact.name, e.message)
                    result.failed.append((contact, e.message))
                else:
                    result.sent.append(contact)
        logger.info("SOS dispatch finished: %s", result.summary)
        return result
