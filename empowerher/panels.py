"""
Form panels and the page shell.

Each panel is a thin state holder over the stores and services: it
validates input, keeps an in-flight flag so a second submit is ignored
while the first is running, and reports outcomes through the shared
Notifier instead of raising.
"""
import logging
import sqlite3
import threading

from empowerher.config import SOS_COOLDOWN_SECONDS
from empowerher.contacts import mailto_link, sms_link, tel_link, validate_contact
from empowerher.errors import SafePathError, ServiceError, ValidationError
from empowerher.feedback import validate_report
from empowerher.geocoder import reverse_geocode
from empowerher.models import SafetyReport
from empowerher.notifications import Notifier
from empowerher.sos import location_link

logger = logging.getLogger(__name__)


class RouteSearchPanel:
    def __init__(self, controller, notifier=None, contact_store=None, session=None):
        self.controller = controller
        self.notifier = notifier or Notifier()
        self.contact_store = contact_store
        self.session = session
        self.start = ""
        self.end = ""
        self.is_searching = False
        self.show_emergency_dialog = False

    @property
    def user(self):
        return self.session.user if self.session is not None else None

    def search(self, start, end):
        self.start, self.end = (start or "").strip(), (end or "").strip()
        if not self.end:
            self.notifier.error("Please enter a destination")
            return None
        if self.is_searching:
            return None
        if self.user is not None and self.contact_store is not None:
            try:
                has_contacts = self.contact_store.has_any(self.user.id)
            except sqlite3.Error as e:
                # proceed anyway
                logger.error("Error checking emergency contacts: %s", e)
                has_contacts = True
            if not has_contacts:
                self.show_emergency_dialog = True
                return None
        return self._proceed()

    def save_emergency_contact(self, name, phone, email=None, relation=None):
        if self.user is None:
            self.notifier.error("You must be logged in to save emergency contacts")
            self.show_emergency_dialog = False
            return self._proceed()
        try:
            validate_contact(name, phone)
            self.contact_store.insert(self.user.id, name, phone, email, relation)
        except ValidationError as e:
            self.notifier.error(e.message)
            return None
        except sqlite3.Error as e:
            logger.error("Error saving emergency contact: %s", e)
            self.notifier.error("Failed to save emergency contact")
            return None
        self.notifier.success("Emergency contact saved")
        self.show_emergency_dialog = False
        return self._proceed()

    def skip_emergency_contact(self):
        self.show_emergency_dialog = False
        return self._proceed()

    def _proceed(self):
        self.is_searching = True
        try:
            if self.start:
                description = f"Calculating route from {self.start} to {self.end}"
            else:
                description = f"Calculating route from your location to {self.end}"
            self.notifier.info("Finding safest route", description)
            return self.controller.calculate_route(self.start, self.end)
        except ServiceError as e:
            self.notifier.error(e.message)
            return None
        finally:
            self.is_searching = False


class ContactForm:
    def __init__(self, user, store, notifier=None, on_submit=None):
        self.user = user
        self.store = store
        self.notifier = notifier or Notifier()
        self.on_submit = on_submit
        self.is_submitting = False
        self.name = self.phone = self.relation = self.email = ""

    def submit(self, name, phone, relation="", email=""):
        self.name, self.phone, self.relation, self.email = name or "", phone or "", relation or "", email or ""
        if self.is_submitting:
            return None
        try:
            validate_contact(self.name, self.phone)
        except ValidationError:
            self.notifier.error("Please fill in all fields")
            return None

        self.is_submitting = True
        try:
            contact = self.store.insert(self.user.id, self.name, self.phone, self.email, self.relation)
        except sqlite3.Error as e:
            logger.error("Error saving emergency contact: %s", e)
            self.notifier.error(f"Failed to save emergency contact: {e}")
            return None
        finally:
            self.is_submitting = False

        self.notifier.success("Emergency contact added successfully")
        if self.on_submit is not None:
            self.on_submit()
        self.name = self.phone = self.relation = self.email = ""
        return contact

    def contacts(self):
        return self.store.list_for_user(self.user.id)

    def call_link(self, phone=None):
        return tel_link(phone or self.phone)


class SOSPanel:
    def __init__(self, user, store, dispatcher, tracker=None, notifier=None,
                 reverse_geocoder=None, cooldown=None):
        self.user = user
        self.store = store
        self.dispatcher = dispatcher
        self.tracker = tracker
        self.notifier = notifier or Notifier()
        self.reverse_geocoder = reverse_geocoder or reverse_geocode
        self.cooldown = SOS_COOLDOWN_SECONDS if cooldown is None else cooldown
        self.is_sending = False
        self.sent = False
        self._reset_timer = None

    def trigger(self):
        if self.sent or self.is_sending:
            return None
        self.is_sending = True
        try:
            contacts = self.store.list_for_user(self.user.id)
            if not contacts:
                self.notifier.error("No emergency contacts found",
                                    "Add an emergency contact before sending an SOS")
                return None
            link, name = self._location()
            result = self.dispatcher.dispatch(self.user, contacts, link, name)
        except sqlite3.Error as e:
            logger.error("Could not load emergency contacts: %s", e)
            self.notifier.error("Failed to send SOS")
            return None
        finally:
            self.is_sending = False

        if not result.failed:
            self.notifier.success("SOS sent successfully to your emergency contacts",
                                  "They have been notified of your location")
        elif not result.sent:
            self.notifier.error("Failed to send SOS", result.summary)
        else:
            self.notifier.warning(f"SOS partially sent: {result.summary}")
        if result.sent:
            self._start_cooldown()
        return result

    def _location(self):
        fix = self.tracker.get_current_position() if self.tracker is not None else None
        if fix is None:
            return None, None
        try:
            name = self.reverse_geocoder(fix.latitude, fix.longitude)
        except SafePathError as e:
            logger.warning("Reverse geocoding failed: %s", e)
            name = None
        return location_link(fix.latitude, fix.longitude), name

    def _start_cooldown(self):
        self.sent = True
        self._reset_timer = threading.Timer(self.cooldown, self._reset)
        self._reset_timer.daemon = True
        self._reset_timer.start()

    def _reset(self):
        self.sent = False
        self._reset_timer = None

    def teardown(self):
        if self._reset_timer is not None:
            self._reset_timer.cancel()
        self._reset()

    def contact_links(self, contact):
        links = {
            "call": tel_link(contact.phone),
            "sms": sms_link(contact.phone, "I need help! Please call me as soon as you can."),
        }
        if contact.email:
            links["email"] = mailto_link(contact.email, "SOS: I need help")
        return links


class FeedbackPanel:
    def __init__(self, user, store, notifier=None, initial_location="", initial_destination=""):
        self.user = user
        self.store = store
        self.notifier = notifier or Notifier()
        self.location = initial_location
        self.destination = initial_destination
        self.is_submitting = False

    def submit(self, rating, location, destination="", incident_type="", description="",
               latitude=None, longitude=None):
        if self.is_submitting:
            return None
        try:
            rating = validate_report(rating, location, incident_type)
        except ValidationError as e:
            self.notifier.error(e.message)
            return None

        report = SafetyReport(location=location, rating=rating,
                              user_id=self.user.id if self.user is not None else None,
                              destination=destination, incident_type=incident_type or None,
                              description=description, latitude=latitude, longitude=longitude)
        self.is_submitting = True
        try:
            report_id = self.store.insert(report)
        except sqlite3.Error as e:
            logger.error("Error saving safety report: %s", e)
            self.notifier.error("Failed to submit your report")
            return None
        finally:
            self.is_submitting = False

        self.notifier.success("Thank you for your feedback!", "Your report will help keep others safe")
        self.location = self.destination = ""
        return report_id


class PageShell:
    """Tab switching behind the login gate."""

    TABS = ("map", "sos", "reports", "contacts")

    def __init__(self, auth, controller=None):
        self.auth = auth
        self.user = auth.user
        self.active_tab = "map"
        self._unsubscribers = [auth.on_auth_state_change(self._on_auth_change)]
        if controller is not None:
            self._unsubscribers.append(controller.on_navigation_complete(self.navigate_to_reports))

    def visible_tab(self):
        return "auth" if self.user is None else self.active_tab

    def select_tab(self, tab):
        if tab not in self.TABS:
            raise ValueError(f"Unknown tab: {tab}")
        if self.user is None:
            return False
        self.active_tab = tab
        return True

    def navigate_to_reports(self):
        return self.select_tab("reports")

    def _on_auth_change(self, event, user):
        self.user = user
        if event == "SIGNED_OUT":
            self.active_tab = "map"

    def close(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
