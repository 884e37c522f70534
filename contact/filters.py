"""
Filtering of contact submissions.

A filter payload (the JSON body of ``POST /api/contacts/query`` or the
arguments of the ``contacts query`` command) is turned into a
``SubmissionFilter`` with a fixed set of optional fields. The same filter is
either lowered to a ``Q`` object for the ORM, where every value is sent as a
bound parameter, or evaluated against record mappings for the local store.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Mapping, Optional

from django.db.models import Q
from django.utils.dateparse import parse_date, parse_datetime

TEXT_FIELDS = ("name", "email", "platform")
DATE_FIELDS = {"startDate": "start_date", "endDate": "end_date"}


class InvalidFilter(ValueError):
    def __init__(self, field, message):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def _parse_bound(field, value, end_of_day=False):
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    elif isinstance(value, str):
        value = value.strip()
        # Date-only bounds cover the whole day.
        try:
            day = parse_date(value)
            parsed = None if day else parse_datetime(value)
        except ValueError:
            day = parsed = None
        if day is not None:
            parsed = datetime.combine(day, time.max if end_of_day else time.min)
        elif parsed is None:
            raise InvalidFilter(field, f"'{value}' is not an ISO-8601 date or datetime")
    else:
        raise InvalidFilter(field, "must be a date string")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class SubmissionFilter:
    name: Optional[str] = None
    email: Optional[str] = None
    platform: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "SubmissionFilter":
        """Validate a loosely shaped filter mapping.

        Unknown keys are ignored and falsy values impose no constraint.
        Raises ``InvalidFilter`` for values of the wrong type, unparseable
        dates or a start bound after the end bound.
        """
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise InvalidFilter("filters", "must be an object")

        values = {}
        for field in TEXT_FIELDS:
            value = payload.get(field)
            if not value:
                continue
            if not isinstance(value, str):
                raise InvalidFilter(field, "must be a string")
            values[field] = value

        for key, attr in DATE_FIELDS.items():
            value = payload.get(key)
            if not value:
                continue
            values[attr] = _parse_bound(key, value, end_of_day=(key == "endDate"))

        start, end = values.get("start_date"), values.get("end_date")
        if start and end and start > end:
            raise InvalidFilter("startDate", "must not be later than endDate")
        return cls(**values)

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.name, self.email, self.platform, self.start_date, self.end_date)
        )

    def to_q(self) -> Q:
        q = Q()
        if self.name:
            q &= Q(name__icontains=self.name)
        if self.email:
            q &= Q(email__icontains=self.email)
        if self.platform:
            q &= Q(platform=self.platform)
        if self.start_date:
            q &= Q(timestamp__gte=self.start_date)
        if self.end_date:
            q &= Q(timestamp__lte=self.end_date)
        return q

    def matches(self, record: Mapping[str, Any]) -> bool:
        if self.name and self.name.casefold() not in (record.get("name") or "").casefold():
            return False
        if self.email and self.email.casefold() not in (record.get("email") or "").casefold():
            return False
        if self.platform and record.get("platform") != self.platform:
            return False
        timestamp = record.get("timestamp")
        if self.start_date and (timestamp is None or timestamp < self.start_date):
            return False
        if self.end_date and (timestamp is None or timestamp > self.end_date):
            return False
        return True

    def to_payload(self) -> dict:
        payload = {}
        for field in TEXT_FIELDS:
            value = getattr(self, field)
            if value:
                payload[field] = value
        for key, attr in DATE_FIELDS.items():
            value = getattr(self, attr)
            if value:
                payload[key] = value.isoformat()
        return payload


def newest_first(records: Iterable[Mapping[str, Any]]) -> list:
    # Same ordering as ContactSubmission.Meta.ordering.
    return sorted(records, key=lambda r: (r["timestamp"], r["id"]), reverse=True)
