"""
Client side data centre used by the contact form and the ``contacts`` command.

``ApiDataCentre`` talks to the hosted REST API, ``StoreDataCentre`` runs the
same operations against a ``SubmissionStore`` directly (normally a
``LocalSubmissionStore`` for offline use). Saving reports why it failed;
reads degrade to empty results and log the problem instead of raising.
"""

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import requests

from .csv_codec import NoData, decode_records, encode_records
from .exceptions import StoreError, SubmissionInvalid, SubmissionNotFound
from .filters import InvalidFilter, SubmissionFilter
from .models import Platform

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

MOBILE_MAX_WIDTH = 768
TABLET_MAX_WIDTH = 1024


def platform_for_width(width):
    if width is None:
        return Platform.UNKNOWN.value
    if width < MOBILE_MAX_WIDTH:
        return Platform.MOBILE.value
    if width < TABLET_MAX_WIDTH:
        return Platform.TABLET.value
    return Platform.DESKTOP.value


class SaveStatus(enum.Enum):
    SAVED = "saved"
    INVALID = "invalid"
    UNAVAILABLE = "unavailable"


@dataclass
class SaveResult:
    status: SaveStatus
    data: Optional[dict] = None
    error: Optional[str] = None
    fields: dict = field(default_factory=dict)

    @property
    def ok(self):
        return self.status is SaveStatus.SAVED


class DataCentre(ABC):
    @abstractmethod
    def save(self, data) -> SaveResult:
        pass

    @abstractmethod
    def get_all(self) -> list:
        pass

    @abstractmethod
    def get(self, pk) -> Optional[dict]:
        pass

    @abstractmethod
    def query(self, filters=None) -> list:
        pass

    @abstractmethod
    def get_stats(self) -> Optional[dict]:
        pass

    @abstractmethod
    def export_csv(self) -> Optional[str]:
        pass

    @abstractmethod
    def delete(self, pk) -> bool:
        pass

    @abstractmethod
    def clear(self) -> bool:
        pass


def _filter_payload(filters):
    if isinstance(filters, SubmissionFilter):
        return filters.to_payload()
    return dict(filters or {})


class ApiDataCentre(DataCentre):
    def __init__(self, api_url, session=None, timeout=DEFAULT_TIMEOUT):
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method, path, **kwargs):
        return self.session.request(
            method, f"{self.api_url}{path}", timeout=self.timeout, **kwargs
        )

    def _json(self, method, path, **kwargs):
        response = self._request(method, path, **kwargs)
        body = response.json()
        if not response.ok or not body.get("success"):
            raise requests.HTTPError(body.get("error") or response.reason, response=response)
        return body

    def save(self, data):
        try:
            response = self._request("POST", "/contacts", json=data)
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error saving contact to {self.api_url}: {e}")
            return SaveResult(SaveStatus.UNAVAILABLE, error=str(e))

        if response.status_code == 400:
            return SaveResult(
                SaveStatus.INVALID, error=body.get("error"), fields=body.get("fields") or {}
            )
        if not response.ok or not body.get("success"):
            logger.error(f"Server refused contact submission: {body.get('error')}")
            return SaveResult(SaveStatus.UNAVAILABLE, error=body.get("error"))
        return SaveResult(SaveStatus.SAVED, data=body.get("data"))

    def get_all(self):
        try:
            return self._json("GET", "/contacts")["data"]
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching contacts: {e}")
            return []

    def get(self, pk):
        try:
            return self._json("GET", f"/contacts/{pk}")["data"]
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching contact {pk}: {e}")
            return None

    def query(self, filters=None):
        try:
            return self._json("POST", "/contacts/query", json=_filter_payload(filters))["data"]
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error querying contacts: {e}")
            return []

    def get_stats(self):
        try:
            return self._json("GET", "/stats")["stats"]
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching stats: {e}")
            return None

    def export_csv(self):
        try:
            response = self._request("GET", "/export/csv")
        except requests.RequestException as e:
            logger.error(f"Error exporting CSV: {e}")
            return None
        if response.status_code == 404:
            logger.info("Nothing to export")
            return None
        if not response.ok:
            logger.error(f"Error exporting CSV: HTTP {response.status_code}")
            return None
        return response.text

    def delete(self, pk):
        try:
            self._json("DELETE", f"/contacts/{pk}")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error deleting contact {pk}: {e}")
            return False
        return True

    def clear(self):
        try:
            self._json("DELETE", "/contacts")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error clearing contacts: {e}")
            return False
        return True


class StoreDataCentre(DataCentre):
    def __init__(self, store):
        self.store = store

    def save(self, data):
        try:
            record = self.store.create(
                data.get("name"), data.get("email"), data.get("message"), data.get("platform")
            )
        except SubmissionInvalid as e:
            return SaveResult(SaveStatus.INVALID, error=str(e), fields=e.errors)
        except StoreError as e:
            logger.error(f"Error saving contact: {e}")
            return SaveResult(SaveStatus.UNAVAILABLE, error=str(e))
        return SaveResult(SaveStatus.SAVED, data=record)

    def get_all(self):
        try:
            return self.store.list()
        except StoreError as e:
            logger.error(f"Error fetching contacts: {e}")
            return []

    def get(self, pk):
        try:
            return self.store.get_by_id(pk)
        except (SubmissionNotFound, StoreError) as e:
            logger.error(f"Error fetching contact {pk}: {e}")
            return None

    def query(self, filters=None):
        try:
            if not isinstance(filters, SubmissionFilter):
                filters = SubmissionFilter.from_payload(filters)
            return self.store.query(filters)
        except (InvalidFilter, StoreError) as e:
            logger.error(f"Error querying contacts: {e}")
            return []

    def get_stats(self):
        try:
            return self.store.stats()
        except StoreError as e:
            logger.error(f"Error fetching stats: {e}")
            return None

    def export_csv(self):
        try:
            return encode_records(self.store.list())
        except NoData:
            logger.info("Nothing to export")
            return None
        except StoreError as e:
            logger.error(f"Error exporting CSV: {e}")
            return None

    def import_csv(self, text):
        """Load rows from a CSV export into a local store; returns the count."""
        import_records = getattr(self.store, "import_records", None)
        if import_records is None:
            raise TypeError(f"{self.store!r} does not support importing")
        return import_records(decode_records(text))

    def delete(self, pk):
        try:
            self.store.delete_by_id(pk)
        except StoreError as e:
            logger.error(f"Error deleting contact {pk}: {e}")
            return False
        return True

    def clear(self):
        try:
            self.store.delete_all()
        except StoreError as e:
            logger.error(f"Error clearing contacts: {e}")
            return False
        return True


SAVED_MESSAGE = "Message sent successfully! Your data has been saved."
INVALID_MESSAGE = "Please check the form: {error}"
UNAVAILABLE_MESSAGE = "Error saving data. Please make sure the server is running."


def submit_contact_form(datacentre, name, email, message, viewport_width=None):
    """Save one contact form entry and return the alert text to show."""
    result = datacentre.save(
        {
            "name": name,
            "email": email,
            "message": message,
            "platform": platform_for_width(viewport_width),
        }
    )
    if result.status is SaveStatus.SAVED:
        return SAVED_MESSAGE
    if result.status is SaveStatus.INVALID:
        return INVALID_MESSAGE.format(error=result.error)
    return UNAVAILABLE_MESSAGE
