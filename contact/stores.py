"""
Storage of contact submissions.

``SubmissionStore`` is the interface the API and the client façade work
against. ``DatabaseSubmissionStore`` keeps submissions in the configured
relational database (PostgreSQL, SQL Server or SQLite, chosen in settings);
``LocalSubmissionStore`` mirrors the same behaviour over a plain key-value
mapping, the way the website keeps an offline copy in browser storage.

Records are returned as dicts with the keys of ``SUBMISSION_FIELDS``.
"""

import functools
import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from django.db import DatabaseError, OperationalError, connections, transaction
from django.db.models import Count

from .exceptions import StoreError, SubmissionInvalid, SubmissionNotFound
from .filters import SubmissionFilter, newest_first
from .models import ContactSubmission, Platform

logger = logging.getLogger(__name__)

SUBMISSION_FIELDS = ("id", "name", "email", "message", "platform", "timestamp", "created_at")
REQUIRED_FIELDS = ("name", "email", "message")
RECENT_WINDOW = timedelta(days=7)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def clean_submission(name, email, message, platform=None):
    """Normalise and check the fields of a new submission.

    Raises ``SubmissionInvalid`` with per-field messages.
    """
    values = {
        "name": name.strip() if isinstance(name, str) else "",
        "email": email.strip() if isinstance(email, str) else "",
        "message": message.strip() if isinstance(message, str) else "",
    }
    missing = [field for field in REQUIRED_FIELDS if not values[field]]
    errors = {field: ["This field is required."] for field in missing}
    if values["email"] and not EMAIL_RE.match(values["email"]):
        errors["email"] = ["Enter a valid email address."]
    if errors:
        raise SubmissionInvalid(errors, missing)

    values["platform"] = (platform.strip() if isinstance(platform, str) else "") or Platform.UNKNOWN.value
    return values


def build_stats(total, recent, breakdown):
    return {
        "totalRecords": total,
        "recentSubmissions": recent,
        "platformBreakdown": [
            {"platform": platform, "count": count} for platform, count in breakdown
        ],
    }


class SubmissionStore(ABC):
    @abstractmethod
    def create(self, name, email, message, platform=None):
        """Persist a new submission and return its record."""

    @abstractmethod
    def list(self):
        """All submissions, newest first."""

    @abstractmethod
    def get_by_id(self, pk):
        """Raises ``SubmissionNotFound`` when there is no such row."""

    @abstractmethod
    def query(self, submission_filter):
        """Submissions matching a ``SubmissionFilter``, newest first."""

    @abstractmethod
    def stats(self):
        pass

    @abstractmethod
    def delete_by_id(self, pk):
        """Remove one submission; absent ids are not an error."""

    @abstractmethod
    def delete_all(self):
        pass

    def check_connection(self):
        """Return ``(connected, error_message)``."""
        return True, None

    def close(self):
        pass


def translate_errors(method):
    """Turn database failures raised by ``method`` into ``StoreError``."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except OperationalError as e:
            logger.error(f"Database unavailable in {method.__name__}: {e}")
            raise StoreError(str(e), retryable=True) from e
        except DatabaseError as e:
            logger.error(f"Database error in {method.__name__}: {e}")
            raise StoreError(str(e)) from e

    return wrapper


class DatabaseSubmissionStore(SubmissionStore):
    def __init__(self, using="default"):
        self.using = using

    def __repr__(self):
        return f"DatabaseSubmissionStore(using={self.using!r})"

    @property
    def objects(self):
        return ContactSubmission.objects.using(self.using)

    def _records(self, queryset):
        return list(queryset.order_by("-timestamp", "-id").values(*SUBMISSION_FIELDS))

    @translate_errors
    def create(self, name, email, message, platform=None):
        values = clean_submission(name, email, message, platform)
        submission = self.objects.create(**values)
        logger.info(f"Contact submission {submission.pk} saved from platform {submission.platform}")
        return {field: getattr(submission, field) for field in SUBMISSION_FIELDS}

    @translate_errors
    def list(self):
        return self._records(self.objects.all())

    @translate_errors
    def get_by_id(self, pk):
        records = self._records(self.objects.filter(pk=pk))
        if not records:
            raise SubmissionNotFound(pk)
        return records[0]

    @translate_errors
    def query(self, submission_filter):
        return self._records(self.objects.filter(submission_filter.to_q()))

    @translate_errors
    def stats(self):
        since = datetime.now(timezone.utc) - RECENT_WINDOW
        total = self.objects.count()
        recent = self.objects.filter(timestamp__gte=since).count()
        breakdown = (
            self.objects.order_by()
            .values("platform")
            .annotate(count=Count("id"))
            .order_by("platform")
        )
        return build_stats(
            total, recent, [(row["platform"], row["count"]) for row in breakdown]
        )

    @translate_errors
    def delete_by_id(self, pk):
        deleted, _ = self.objects.filter(pk=pk).delete()
        if deleted:
            logger.info(f"Contact submission {pk} deleted")
        return deleted

    @translate_errors
    def delete_all(self):
        with transaction.atomic(using=self.using):
            deleted, _ = self.objects.all().delete()
        logger.info(f"Cleared {deleted} contact submissions")
        return deleted

    def check_connection(self):
        try:
            connections[self.using].ensure_connection()
        except DatabaseError as e:
            return False, str(e)
        return True, None

    def close(self):
        connections[self.using].close()


class LocalSubmissionStore(SubmissionStore):
    """Submissions kept as JSON inside a key-value mapping.

    Any ``MutableMapping`` of str to str works: a dict in tests, a ``shelve``
    file for the command line client.
    """

    data_key = "crossplatform_data"
    sequence_key = "crossplatform_sequence"

    def __init__(self, storage):
        self.storage = storage
        if self.data_key not in self.storage:
            self.storage[self.data_key] = json.dumps([])

    def _load(self):
        rows = json.loads(self.storage.get(self.data_key) or "[]")
        for row in rows:
            row["timestamp"] = datetime.fromisoformat(row["timestamp"])
            row["created_at"] = datetime.fromisoformat(row["created_at"])
        return rows

    def _dump(self, rows):
        serialised = [
            dict(row, timestamp=row["timestamp"].isoformat(), created_at=row["created_at"].isoformat())
            for row in rows
        ]
        self.storage[self.data_key] = json.dumps(serialised)

    def _next_id(self):
        pk = int(self.storage.get(self.sequence_key) or 0) + 1
        self.storage[self.sequence_key] = str(pk)
        return pk

    def _append(self, values, timestamp=None):
        now = datetime.now(timezone.utc)
        record = {
            "id": self._next_id(),
            **values,
            "timestamp": timestamp or now,
            "created_at": now,
        }
        rows = self._load()
        rows.append(record)
        self._dump(rows)
        return {field: record[field] for field in SUBMISSION_FIELDS}

    def create(self, name, email, message, platform=None):
        return self._append(clean_submission(name, email, message, platform))

    def import_records(self, records):
        """Add rows read back from a CSV export; invalid rows are skipped.

        Returns the number of imported rows. Imported rows get new ids; their
        timestamp is kept when it parses.
        """
        imported = 0
        for position, record in enumerate(records):
            try:
                values = clean_submission(
                    record.get("name"),
                    record.get("email"),
                    record.get("message"),
                    record.get("platform"),
                )
            except SubmissionInvalid as e:
                logger.warning(
                    f"Skipping imported row {position}",
                    extra={"errors": e.errors},
                )
                continue
            try:
                timestamp = datetime.fromisoformat(record.get("timestamp") or "")
            except ValueError:
                timestamp = None
            if timestamp is not None and timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            self._append(values, timestamp)
            imported += 1
        return imported

    def list(self):
        return newest_first(self._load())

    def get_by_id(self, pk):
        for row in self._load():
            if row["id"] == pk:
                return row
        raise SubmissionNotFound(pk)

    def query(self, submission_filter):
        return newest_first(row for row in self._load() if submission_filter.matches(row))

    def stats(self):
        rows = self._load()
        since = datetime.now(timezone.utc) - RECENT_WINDOW
        breakdown = {}
        for row in rows:
            breakdown[row["platform"]] = breakdown.get(row["platform"], 0) + 1
        return build_stats(
            len(rows),
            sum(1 for row in rows if row["timestamp"] >= since),
            sorted(breakdown.items()),
        )

    def delete_by_id(self, pk):
        rows = self._load()
        remaining = [row for row in rows if row["id"] != pk]
        self._dump(remaining)
        return len(rows) - len(remaining)

    def delete_all(self):
        rows = self._load()
        self._dump([])
        return len(rows)

    def close(self):
        close = getattr(self.storage, "close", None)
        if close is not None:
            close()
