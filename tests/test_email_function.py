import pytest

from empowerher import http
from empowerher.email_function import ResendMailer, render_sos_email
from empowerher.errors import ServiceError

URL = "/functions/v1/send-sos-email"


def test_missing_contact_email_is_rejected(client, sender):
    resp = client.post(URL, json={"userName": "Asha", "contactName": "Ravi"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Contact email is required"}
    assert sender.payloads == []


def test_invalid_body_is_rejected(client):
    resp = client.post(URL, data="not json", content_type="application/json")
    assert resp.status_code == 400


def test_send_goes_through_configured_mailer(client, sender):
    resp = client.post(URL, json={"userName": "Asha", "contactName": "Ravi",
                                  "contactEmail": "ravi@example.com",
                                  "locationLink": "https://www.google.com/maps?q=11.0,76.9"})
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "data": {"id": "email-1"}}
    assert sender.payloads[0]["contactEmail"] == "ravi@example.com"


def test_mailer_failure_is_500_with_error(client, sender):
    sender.failing.add("ravi@example.com")
    resp = client.post(URL, json={"userName": "Asha", "contactEmail": "ravi@example.com"})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "mailbox unavailable"}


def test_cors_preflight_is_open(client):
    resp = client.options(URL, headers={"Origin": "https://app.example",
                                        "Access-Control-Request-Method": "POST"})
    assert resp.headers.get("Access-Control-Allow-Origin") == "*"


def test_render_prefers_link_then_name_and_escapes():
    subject, html = render_sos_email("<Asha>", "https://maps.example/?q=1&r=2")
    assert subject == "URGENT: <Asha> needs your help!"
    assert "&lt;Asha&gt;" in html
    assert "https://maps.example/?q=1&amp;r=2" in html

    _, html = render_sos_email("Asha", None, "RS Puram")
    assert "Their last known location: RS Puram" in html

    _, html = render_sos_email("Asha")
    assert "Location information is not available." in html


def test_resend_mailer_requires_api_key():
    with pytest.raises(ServiceError):
        ResendMailer(api_key="").send({"contactEmail": "ravi@example.com"})


def test_resend_mailer_posts_message(monkeypatch):
    calls = []

    def fake_post(url, payload, headers=None):
        calls.append((url, payload, headers))
        return {"id": "re_123"}

    monkeypatch.setattr(http, "post_json", fake_post)
    mailer = ResendMailer(api_key="re_key", api_url="https://resend.example/emails",
                          sender="EmpowerHer <alerts@example.com>")

    assert mailer.send({"userName": "Asha", "contactEmail": "ravi@example.com"}) == {"id": "re_123"}
    url, payload, headers = calls[0]
    assert url == "https://resend.example/emails"
    assert payload["to"] == ["ravi@example.com"]
    assert payload["from"] == "EmpowerHer <alerts@example.com>"
    assert headers == {"Authorization": "Bearer re_key"}
