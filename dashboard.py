"""Terminal client for the complaint desk.

Mirrors the browser dashboard: a ``Dashboard`` object owns the client state
(complaint list with an on-disk cache), the new-complaint form with its single
map pin, and dispatches named UI events. Every mutation is followed by a full
reload of the list.
"""
import json
import logging
import argparse
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

import requests

from config import setup_logging

logger = logging.getLogger(__name__)

API_URL = "http://localhost:5000"
DEFAULT_CACHE = Path.home() / ".complaint_desk_cache.json"

REQUIRED_FIELDS = (
    "fullName", "contactNumber", "email", "routeNumber",
    "location", "complaintType", "description", "priority",
)
SEARCH_KEYS = ("id", "fullName", "routeNumber", "location")
STATUS_ALL = "all"


def client_timestamp() -> str:
    return datetime.now().strftime("%d %b %Y, %I:%M %p").lower()


class ComplaintApi:
    """Thin HTTP wrapper. Returns decoded JSON bodies; network failures raise
    ``requests.RequestException``."""

    def __init__(self, base_url: str = API_URL, session=None, token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token = token

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    def register(self, name: str, email: str, password: str) -> dict:
        res = self.session.post(self._url("/api/auth/register"),
                                json={"name": name, "email": email, "password": password})
        return res.json()

    def login(self, email: str, password: str) -> dict:
        res = self.session.post(self._url("/api/auth/login"), json={"email": email, "password": password})
        data = res.json()
        if data.get("success"):
            self.token = data["token"]
        return data

    def list_complaints(self) -> dict:
        return self.session.get(self._url("/api/complaints")).json()

    def submit_complaint(self, payload: dict, image: Optional[Tuple[str, bytes]] = None) -> dict:
        files = {"image": image} if image else None
        return self.session.post(self._url("/api/complaints"), data=payload, files=files).json()

    def set_status(self, key: str, status: str) -> dict:
        res = self.session.put(self._url(f"/api/complaints/{key}/status"),
                               json={"status": status}, headers=self._auth_headers())
        return res.json()

    def delete_complaint(self, key: str) -> dict:
        res = self.session.delete(self._url(f"/api/complaints/{key}"), headers=self._auth_headers())
        return res.json()


class DashboardState:
    """The in-memory complaint list plus its last-known-good cache file."""

    def __init__(self, cache_path: Path = DEFAULT_CACHE):
        self.cache_path = Path(cache_path)
        self.complaints = []

    def load(self, api: ComplaintApi) -> bool:
        """Re-fetch everything; fall back to the cache when the server fails.
        Returns True when the list came from the server."""
        try:
            data = api.list_complaints()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to load complaints from server: {e}")
        else:
            if data and data.get("success"):
                self.complaints = [self._normalize(c) for c in data.get("complaints") or []]
                self._write_cache()
                return True
            logger.error(f"Server returned error while loading complaints: {data}")
        self.complaints = self._read_cache()
        return False

    @staticmethod
    def _normalize(complaint: dict) -> dict:
        coords = complaint.get("mapCoordinates")
        if isinstance(coords, str):
            try:
                complaint["mapCoordinates"] = json.loads(coords)
            except ValueError:
                complaint["mapCoordinates"] = None
        return complaint

    def _write_cache(self) -> None:
        try:
            self.cache_path.write_text(json.dumps(self.complaints))
        except OSError as e:
            logger.warning(f"Could not write complaint cache {self.cache_path}: {e}")

    def _read_cache(self) -> list:
        try:
            return json.loads(self.cache_path.read_text())
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable complaint cache {self.cache_path}: {e}")
            return []

    def stats(self) -> dict:
        def count(status):
            return sum(1 for c in self.complaints if c.get("status") == status)
        return {
            "total": len(self.complaints),
            "pending": count("Pending"),
            "inProgress": count("In Progress"),
            "resolved": count("Resolved"),
        }

    def filter(self, search: str = "", status: str = STATUS_ALL) -> list:
        term = (search or "").lower()
        status = status or STATUS_ALL
        matches = []
        for c in self.complaints:
            hit = any(term in str(c.get(key) or "").lower() for key in SEARCH_KEYS)
            if hit and (status == STATUS_ALL or c.get("status") == status):
                matches.append(c)
        return matches


def render_stats(stats: dict) -> str:
    return (f"Total: {stats['total']} | Pending: {stats['pending']} | "
            f"In Progress: {stats['inProgress']} | Resolved: {stats['resolved']}")


def render_card(c: dict) -> str:
    lines = [
        f"[{c.get('status')}] {c.get('id')}",
        f"  Name: {c.get('fullName') or ''}",
        f"  Contact: {c.get('contactNumber') or ''}",
        f"  Email: {c.get('email') or ''}",
        f"  Route: {c.get('routeNumber') or ''}",
        f"  Location: {c.get('location') or ''}",
        f"  Type: {c.get('complaintType') or ''}",
        f"  Priority: {c.get('priority') or ''}",
        f"  Submitted: {c.get('timestamp') or ''}",
    ]
    coords = c.get("mapCoordinates")
    if coords:
        lines.append(f"  Map: {float(coords['lat']):.5f}, {float(coords['lng']):.5f}")
    if c.get("imageUrl"):
        lines.append(f"  Image: {c['imageUrl']}")
    lines.append(f"  Description: {c.get('description') or ''}")
    return "\n".join(lines)


def render_list(complaints: list) -> str:
    if not complaints:
        return "No complaints found."
    return "\n\n".join(render_card(c) for c in complaints)


class MapPin:
    """At most one coordinate; placing a new pin replaces the old one."""

    def __init__(self):
        self.coordinates = None

    @property
    def is_set(self) -> bool:
        return self.coordinates is not None

    def place(self, lat: float, lng: float) -> None:
        self.coordinates = {"lat": float(lat), "lng": float(lng)}

    def clear(self) -> None:
        self.coordinates = None


class ComplaintForm:
    def __init__(self):
        self.pin = MapPin()
        self.reset()

    def reset(self) -> None:
        self.fields = {name: "" for name in REQUIRED_FIELDS}
        self.fields["priority"] = "Medium"
        self.image = None
        self.pin.clear()

    def set(self, **values) -> None:
        for name, value in values.items():
            if name not in self.fields:
                raise KeyError(f"Unknown form field: {name}")
            self.fields[name] = (value or "").strip()

    def attach_image(self, filename: str, data: bytes) -> None:
        self.image = (filename, data)

    def missing_fields(self) -> list:
        return [name for name in REQUIRED_FIELDS if not self.fields.get(name)]

    def to_payload(self, timestamp: Optional[str] = None) -> dict:
        payload = dict(self.fields)
        payload["timestamp"] = timestamp or client_timestamp()
        payload["mapPin"] = "true" if self.pin.is_set else "false"
        if self.pin.is_set:
            payload["mapCoordinates"] = json.dumps(self.pin.coordinates)
        return payload


class Dashboard:
    """Application state plus named event handlers.

    ``notify`` is the user-visible alert; ``confirm`` answers yes/no prompts.
    """

    def __init__(self, api: ComplaintApi, state: Optional[DashboardState] = None,
                 notify: Callable[[str], None] = print,
                 confirm: Callable[[str], bool] = lambda message: True):
        self.api = api
        self.state = state or DashboardState()
        self.form = ComplaintForm()
        self.notify = notify
        self.confirm = confirm
        self.view = "home"
        self.search = ""
        self.status_filter = STATUS_ALL
        self.visible = []
        self.handlers = {
            "submit-complaint": self.on_submit_complaint,
            "set-status": self.on_set_status,
            "delete": self.on_delete,
            "search-change": self.on_search_change,
            "clear-filter": self.on_clear_filter,
            "navigate": self.on_navigate,
        }

    def dispatch(self, event: str, **payload):
        try:
            handler = self.handlers[event]
        except KeyError:
            raise ValueError(f"Unknown dashboard event: {event}")
        return handler(**payload)

    def refresh(self) -> bool:
        online = self.state.load(self.api)
        self.visible = self.state.filter(self.search, self.status_filter)
        return online

    def render(self) -> str:
        return f"{render_stats(self.state.stats())}\n\n{render_list(self.visible)}"

    def on_submit_complaint(self) -> bool:
        if self.form.missing_fields():
            self.notify("Please fill all required fields!")
            return False
        try:
            result = self.api.submit_complaint(self.form.to_payload(), self.form.image)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Network error posting complaint: {e}")
            result = {"success": False, "error": str(e) or "Network error"}
        if not result.get("success"):
            logger.error(f"Submit error: {result}")
            self.notify(f"Failed to submit complaint: {result.get('error') or 'server error'}")
            return False
        self.refresh()
        self.form.reset()
        self.view = "dashboard"
        self.notify(f"Complaint registered successfully! Complaint ID: {result['complaint']['id']}")
        return True

    def _protected(self, action: Callable[[], dict], failure: str, success: str) -> bool:
        if not self.api.token:
            self.notify("Please login first to perform this action.")
            return False
        try:
            data = action()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"{failure}: {e}")
            self.notify(f"{failure}: network error")
            return False
        if not data.get("success"):
            logger.error(f"{failure}: {data}")
            self.notify(f"{failure}: {data.get('error') or 'unknown'}")
            return False
        self.refresh()
        self.notify(success)
        return True

    def on_set_status(self, key: str, status: str) -> bool:
        return self._protected(lambda: self.api.set_status(key, status),
                               "Failed to update status", f'Complaint updated to "{status}"')

    def on_delete(self, key: str) -> bool:
        if self.api.token and not self.confirm("Are you sure you want to delete this complaint?"):
            return False
        return self._protected(lambda: self.api.delete_complaint(key),
                               "Failed to delete", "Complaint deleted")

    def on_search_change(self, search: str = "", status: str = STATUS_ALL) -> list:
        self.search = search
        self.status_filter = status
        self.visible = self.state.filter(search, status)
        return self.visible

    def on_clear_filter(self) -> list:
        return self.on_search_change("", STATUS_ALL)

    def on_navigate(self, page: str) -> None:
        self.view = page


def main(argv=None):
    parser = argparse.ArgumentParser(description="Show the complaint dashboard in the terminal")
    parser.add_argument("--api", default=API_URL, help="API base URL")
    parser.add_argument("--cache", default=str(DEFAULT_CACHE), help="offline cache file")
    parser.add_argument("--search", default="", help="match id, name, route or location")
    parser.add_argument("--status", default=STATUS_ALL, choices=[STATUS_ALL, "Pending", "In Progress", "Resolved"])
    args = parser.parse_args(argv)

    setup_logging()

    dash = Dashboard(ComplaintApi(args.api), DashboardState(Path(args.cache)))
    if not dash.refresh():
        print("Server unreachable, showing cached complaints.")
    dash.dispatch("search-change", search=args.search, status=args.status)
    print(dash.render())


if __name__ == "__main__":
    main()
