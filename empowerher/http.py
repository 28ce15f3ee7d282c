import logging

import requests

from empowerher.config import REQUEST_TIMEOUT, USER_AGENT
from empowerher.errors import ServiceError

logger = logging.getLogger(__name__)

session = requests.Session()
DEFAULT_HEADERS = {"User-Agent": USER_AGENT, "Accept": "application/json"}


def _request(method, url, **kwargs):
    headers = dict(DEFAULT_HEADERS)
    headers.update(kwargs.pop("headers", None) or {})
    try:
        r = session.request(method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        logger.error("Network error contacting %s: %s", url, e)
        raise ServiceError(f"Could not reach {url}", url=url) from e
    if not r.ok:
        logger.error("HTTP %s from %s", r.status_code, url)
        message = _error_detail(r) or f"Service returned HTTP {r.status_code}"
        raise ServiceError(message, url=url, status=r.status_code)
    return r


def _error_detail(r):
    try:
        body = r.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error") or body.get("message")
    return None


def get_json(url, params=None):
    r = _request("GET", url, params=params)
    try:
        return r.json()
    except ValueError as e:
        raise ServiceError("Malformed JSON response", url=url, status=r.status_code) from e


def get_text(url, params=None):
    return _request("GET", url, params=params).text


def post_json(url, payload, headers=None):
    r = _request("POST", url, json=payload, headers=headers)
    try:
        return r.json()
    except ValueError as e:
        raise ServiceError("Malformed JSON response", url=url, status=r.status_code) from e
