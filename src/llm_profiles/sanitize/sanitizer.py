"""
Input Sanitizer
================
Cleans raw field values before the builder stores them.

The builder only depends on the ``Sanitizer`` protocol; ``InputSanitizer`` is
the default implementation:

- strings   – trimmed, tags / script blocks / ``javascript:`` removed,
              HTML-escaped, whitespace collapsed, length-capped
- URLs      – must parse with an allowed scheme, else rejected (None)
- dates     – ISO 8601 out, precision preserved (date-only stays date-only,
              date-times become UTC ``...Z``), 1900 ≤ year ≤ now + 100
- numbers   – finite and within optional bounds, else rejected
- objects   – cleaned recursively; URL, date and number fields by name,
              any other string as text, nested objects by their Schema.org shape

Example::

    from llm_profiles.sanitize.sanitizer import default_sanitizer

    default_sanitizer.sanitize_string("  <b>Hello</b>   world ")   # 'Hello world'
    default_sanitizer.sanitize_url("javascript:alert(1)")          # None
    default_sanitizer.sanitize_date("2024-06-15T11:00:00+02:00")   # '2024-06-15T09:00:00Z'
"""

from __future__ import annotations

import html
import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Protocol
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class Sanitizer(Protocol):
    """The functions the builder calls. ``None`` means the value was rejected."""

    def sanitize_string(self, value: Any) -> str: ...

    def sanitize_url(self, value: Any) -> str | None: ...

    def sanitize_date(self, value: Any) -> str | None: ...

    def sanitize_number(
        self,
        value: Any,
        minimum: float | None = None,
        maximum: float | None = None,
    ) -> int | float | None: ...

    def sanitize_structured_data(self, data: Any, shape: str | None = None) -> dict[str, Any]: ...


@dataclass(frozen=True)
class SanitizerConfig:
    max_string_length: int = 10_000
    max_url_length: int = 2048
    max_email_length: int = 254
    max_phone_length: int = 50
    max_sku_length: int = 100
    max_array_items: int = 100
    allowed_url_schemes: frozenset[str] = field(
        default_factory=lambda: frozenset({"http", "https", "mailto", "tel"})
    )
    min_year: int = 1900
    max_years_ahead: int = 100


_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[0-9\s\-().]+$")
_LANGUAGE_RE = re.compile(r"^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})*$")
_SKU_RE = re.compile(r"^[A-Za-z0-9\-_]+$")


# ---------------------------------------------------------------------------
# Field tables for structured data
# ---------------------------------------------------------------------------

URL_FIELDS = frozenset({
    "url", "mainEntityOfPage", "sameAs", "contentUrl", "embedUrl", "thumbnailUrl",
    "logo",
})
DATE_FIELDS = frozenset({
    "datePublished", "dateModified", "dateCreated", "datePosted", "validThrough",
    "startDate", "endDate", "uploadDate", "validFrom", "priceValidUntil",
})
NUMBER_BOUNDS: dict[str, tuple[float | None, float | None]] = {
    "wordCount": (0, 1_000_000),
    "price": (0, None),
    "ratingValue": (0, None),
    "bestRating": (0, None),
    "worstRating": (0, None),
    "ratingCount": (0, None),
    "reviewCount": (0, None),
    "width": (0, None),
    "height": (0, None),
}

#: Nested object field → Schema.org shape used to clean it.
NESTED_SHAPES: dict[str, str] = {
    "author": "Person",
    "creator": "Person",
    "performer": "Person",
    "publisher": "Organization",
    "organizer": "Organization",
    "hiringOrganization": "Organization",
    "provider": "Organization",
    "brand": "Brand",
    "address": "PostalAddress",
    "location": "Place",
    "jobLocation": "Place",
    "image": "ImageObject",
    "thumbnail": "ImageObject",
    "offers": "Offer",
    "baseSalary": "MonetaryAmount",
    "aggregateRating": "AggregateRating",
    "reviewRating": "Rating",
    "geo": "GeoCoordinates",
}

#: Extra numeric bounds that only apply inside a given shape.
SHAPE_NUMBER_BOUNDS: dict[str, dict[str, tuple[float | None, float | None]]] = {
    "GeoCoordinates": {"latitude": (-90, 90), "longitude": (-180, 180)},
    "MonetaryAmount": {"value": (0, None), "minValue": (0, None), "maxValue": (0, None)},
    "Offer": {"price": (0, None)},
}


class InputSanitizer:
    """Default ``Sanitizer`` implementation."""

    def __init__(self, config: SanitizerConfig | None = None) -> None:
        self.config = config or SanitizerConfig()

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def sanitize_string(self, value: Any, max_length: int | None = None) -> str:
        if value is None:
            return ""
        text = str(value).strip()
        text = text[: max_length or self.config.max_string_length]
        text = strip_tags(text)
        text = _JS_PROTOCOL_RE.sub("", text)
        text = html.escape(html.unescape(text), quote=True)
        return _WHITESPACE_RE.sub(" ", text).strip()

    def sanitize_url(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        url = strip_tags(value).strip()
        if not url or len(url) > self.config.max_url_length:
            return None
        if any(ch.isspace() for ch in url):
            return None
        try:
            parts = urlsplit(url)
        except ValueError:
            return None
        if parts.scheme.lower() not in self.config.allowed_url_schemes:
            return None
        if parts.scheme.lower() in ("http", "https") and not parts.netloc:
            return None
        return url

    def sanitize_email(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        email = self.sanitize_string(value, self.config.max_email_length)
        return email.lower() if _EMAIL_RE.match(email) else None

    def sanitize_phone(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        phone = self.sanitize_string(value, self.config.max_phone_length)
        return phone if _PHONE_RE.match(phone) else None

    def sanitize_language_code(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        code = value.strip()
        return code if _LANGUAGE_RE.match(code) else None

    def sanitize_sku(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        sku = self.sanitize_string(value, self.config.max_sku_length)
        return sku if _SKU_RE.match(sku) else None

    def sanitize_number(
        self,
        value: Any,
        minimum: float | None = None,
        maximum: float | None = None,
        decimals: int | None = None,
    ) -> int | float | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                return None
            if number.is_integer() and "." not in value and "e" not in value.lower():
                number = int(number)
        else:
            return None
        if isinstance(number, float) and not math.isfinite(number):
            return None
        if minimum is not None and number < minimum:
            return None
        if maximum is not None and number > maximum:
            return None
        if decimals is not None:
            number = round(number, decimals)
        return number

    def sanitize_date(self, value: Any) -> str | None:
        if isinstance(value, datetime):
            moment = value
        elif isinstance(value, date):
            return value.isoformat() if self._in_range(value.year) else None
        elif isinstance(value, str):
            text = strip_tags(value).strip()
            if _DATE_ONLY_RE.match(text):
                try:
                    day = date.fromisoformat(text)
                except ValueError:
                    return None
                return day.isoformat() if self._in_range(day.year) else None
            moment = _parse_datetime(text)
            if moment is None:
                return None
        else:
            return None

        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        if not self._in_range(moment.year):
            return None
        return to_iso(moment)

    def sanitize_string_array(self, values: Any) -> list[str]:
        if not isinstance(values, (list, tuple)):
            return []
        cleaned = (self.sanitize_string(v) for v in values[: self.config.max_array_items])
        return [v for v in cleaned if v]

    # ------------------------------------------------------------------
    # Structured data
    # ------------------------------------------------------------------

    def sanitize_structured_data(self, data: Any, shape: str | None = None) -> dict[str, Any]:
        """Clean a nested object; fields whose value is rejected are dropped."""
        if not isinstance(data, Mapping):
            return {}
        bounds = {**NUMBER_BOUNDS, **SHAPE_NUMBER_BOUNDS.get(shape or "", {})}
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            result = self._sanitize_field(key, value, bounds)
            if result is None or result == "":
                logger.debug("Dropped %s.%s: rejected by sanitizer", shape or "object", key)
                continue
            cleaned[key] = result
        return cleaned

    def _sanitize_field(self, key: str, value: Any, bounds: Mapping[str, tuple]) -> Any:
        if isinstance(value, Mapping):
            shape = value.get("@type")
            if not isinstance(shape, str):
                shape = NESTED_SHAPES.get(key)
            return self.sanitize_structured_data(value, shape)
        if isinstance(value, (list, tuple)):
            items = [self._sanitize_field(key, v, bounds) for v in value[: self.config.max_array_items]]
            return [v for v in items if v is not None and v != ""]
        if key.startswith("@"):
            return value
        if key in DATE_FIELDS:
            return self.sanitize_date(value)
        if key in URL_FIELDS and isinstance(value, str):
            return self.sanitize_url(value)
        if key in bounds:
            minimum, maximum = bounds[key]
            return self.sanitize_number(value, minimum, maximum)
        if key == "email":
            return self.sanitize_email(value)
        if key in ("telephone", "faxNumber"):
            return self.sanitize_phone(value)
        if key == "inLanguage":
            return self.sanitize_language_code(value)
        if key == "sku":
            return self.sanitize_sku(value)
        if isinstance(value, str):
            return self.sanitize_string(value)
        return value

    def _in_range(self, year: int) -> bool:
        return self.config.min_year <= year <= datetime.now(timezone.utc).year + self.config.max_years_ahead


def strip_tags(text: str) -> str:
    """Text content of ``text`` with markup, script and style blocks removed."""
    if "<" not in text:
        return text
    soup = BeautifulSoup(text, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    return soup.get_text()


def to_iso(value: date | datetime) -> str:
    """ISO 8601 text; datetimes are converted to UTC (naive ones taken as UTC) with a Z suffix."""
    if not isinstance(value, datetime):
        return value.isoformat()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc).replace(tzinfo=None)
    timespec = "milliseconds" if value.microsecond else "seconds"
    return value.isoformat(timespec=timespec) + "Z"


def _parse_datetime(text: str) -> datetime | None:
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


default_sanitizer = InputSanitizer()
