"""QR payload formatting.

Each content kind maps a typed form record to the literal text the QR
symbol encodes. Formatters are pure and total: they never raise for a
record of the right type, and empty optional fields are simply left out.

Reserved characters (``;`` ``,`` ``:`` ``"`` ``\\``) are interpolated
as-is unless a caller passes ``escape=True``. Scanners in the wild accept
the raw form for ordinary SSIDs and names, and escaping changes the
encoded text, so it stays opt-in.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Union
from urllib.parse import quote

from snappyqr.errors import ValidationError


class ContentKind(str, Enum):
    TEXT = "text"
    WIFI = "wifi"
    VCARD = "vcard"
    CALENDAR = "calendar"
    PAYMENT = "payment"
    SOCIAL = "social"
    MEDIA = "media"


class WifiEncryption(str, Enum):
    WPA = "WPA"
    WEP = "WEP"
    NONE = "nopass"


class PaymentType(str, Enum):
    PAYPAL = "PayPal"
    BITCOIN = "Bitcoin"
    ETHEREUM = "Ethereum"


class SocialPlatform(str, Enum):
    TWITTER = "Twitter"
    INSTAGRAM = "Instagram"
    LINKEDIN = "LinkedIn"
    FACEBOOK = "Facebook"
    TIKTOK = "TikTok"


@dataclass(frozen=True)
class TextContent:
    url: str = ""


@dataclass(frozen=True)
class WifiCredentials:
    ssid: str = ""
    password: str = ""
    encryption: WifiEncryption = WifiEncryption.WPA
    hidden: bool = False


@dataclass(frozen=True)
class VCardContact:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    organization: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class CalendarEvent:
    """Event with local date-times as typed in a form (``YYYY-MM-DDTHH:MM``).

    End-before-start is accepted; nothing here compares the two.
    """

    title: str = ""
    start_date: str = ""
    end_date: str = ""
    description: str | None = None
    location: str | None = None


@dataclass(frozen=True)
class PaymentInfo:
    payment_type: PaymentType = PaymentType.PAYPAL
    address: str = ""
    amount: str = ""
    message: str | None = None


@dataclass(frozen=True)
class SocialProfile:
    platform: SocialPlatform = SocialPlatform.TWITTER
    username: str = ""


@dataclass(frozen=True)
class MediaLink:
    """Public URL of an uploaded file. Empty until the upload is done."""

    url: str = ""


ContentData = Union[
    TextContent,
    WifiCredentials,
    VCardContact,
    CalendarEvent,
    PaymentInfo,
    SocialProfile,
    MediaLink,
]

DATA_TYPES: dict[ContentKind, type] = {
    ContentKind.TEXT: TextContent,
    ContentKind.WIFI: WifiCredentials,
    ContentKind.VCARD: VCardContact,
    ContentKind.CALENDAR: CalendarEvent,
    ContentKind.PAYMENT: PaymentInfo,
    ContentKind.SOCIAL: SocialProfile,
    ContentKind.MEDIA: MediaLink,
}

_ENUM_FIELDS: dict[str, type[Enum]] = {
    "encryption": WifiEncryption,
    "payment_type": PaymentType,
    "platform": SocialPlatform,
}
_BOOL_FIELDS = frozenset({"hidden"})

# MECARD-style escaping used by the WIFI: scheme
_WIFI_RESERVED = re.compile(r'([\\;,:"])')
# RFC 6350 / RFC 5545 text escaping
_TEXT_RESERVED = re.compile(r"([\\;,])")

# encodeURIComponent leaves these unescaped in addition to alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"

_DATETIME_DELIMITERS = re.compile(r"[-:]")


def escape_field(value: str, *, wifi: bool = False) -> str:
    """Backslash-escape reserved characters for structured payloads."""
    if wifi:
        return _WIFI_RESERVED.sub(r"\\\1", value)
    return _TEXT_RESERVED.sub(r"\\\1", value).replace("\n", "\\n")


def encode_uri_component(value: str) -> str:
    """Percent-encode like JavaScript's ``encodeURIComponent``."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def compact_datetime(value: str) -> str:
    """Strip ``-`` and ``:`` so ``2024-05-01T10:30`` becomes ``20240501T1030``."""
    return _DATETIME_DELIMITERS.sub("", value)


def format_wifi(data: WifiCredentials, *, escape: bool = False) -> str:
    ssid, password = data.ssid, data.password
    if escape:
        ssid = escape_field(ssid, wifi=True)
        password = escape_field(password, wifi=True)
    hidden = "true" if data.hidden else "false"
    return f"WIFI:T:{WifiEncryption(data.encryption).value};S:{ssid};P:{password};H:{hidden};;"


def format_vcard(data: VCardContact, *, escape: bool = False) -> str:
    def field(value: str | None) -> str:
        value = value or ""
        return escape_field(value) if escape else value

    first, last = field(data.first_name), field(data.last_name)
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{first} {last}",
        f"N:{last};{first};;;",
    ]
    if data.organization:
        lines.append(f"ORG:{field(data.organization)}")
    if data.title:
        lines.append(f"TITLE:{field(data.title)}")
    lines += [
        f"TEL:{field(data.phone)}",
        f"EMAIL:{field(data.email)}",
        "END:VCARD",
    ]
    return "\n".join(lines)


def format_calendar(data: CalendarEvent, *, escape: bool = False) -> str:
    def field(value: str | None) -> str:
        value = value or ""
        return escape_field(value) if escape else value

    lines = [
        "BEGIN:VEVENT",
        f"SUMMARY:{field(data.title)}",
        f"DTSTART:{compact_datetime(data.start_date)}",
        f"DTEND:{compact_datetime(data.end_date)}",
    ]
    if data.description:
        lines.append(f"DESCRIPTION:{field(data.description)}")
    if data.location:
        lines.append(f"LOCATION:{field(data.location)}")
    lines.append("END:VEVENT")
    return "\n".join(lines)


def format_payment(data: PaymentInfo) -> str:
    payment_type = PaymentType(data.payment_type).value
    message = encode_uri_component(data.message or "")
    return f"{payment_type}:{data.address}?amount={data.amount}&message={message}"


def format_social(data: SocialProfile) -> str:
    return f"{SocialPlatform(data.platform).value.lower()}:{data.username}"


def build_record(kind: ContentKind, values: Mapping[str, Any]) -> ContentData:
    """Build the form record for ``kind`` from loosely typed input.

    Enum fields accept their string values (``"nopass"``, ``"Bitcoin"``).

    Raises:
        ValidationError: On unknown fields, wrong value types or an
            unrecognised enum value.
    """
    kind = ContentKind(kind)
    record_type = DATA_TYPES[kind]
    defaults = {f.name: f.default for f in fields(record_type)}

    unknown = sorted(set(values) - set(defaults))
    if unknown:
        raise ValidationError(f"Unknown {kind.value} fields: {', '.join(unknown)}")

    cleaned: dict[str, Any] = {}
    for name, value in values.items():
        if value is None and defaults[name] is not None:
            # Required fields fall back to their empty default
            continue
        if name in _ENUM_FIELDS:
            try:
                cleaned[name] = _ENUM_FIELDS[name](value)
            except ValueError:
                raise ValidationError(f"Invalid {name}: {value!r}")
        elif name in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ValidationError(f"{name} must be a boolean")
            cleaned[name] = value
        elif value is None or isinstance(value, str):
            cleaned[name] = value
        else:
            raise ValidationError(f"{name} must be a string")
    return record_type(**cleaned)


def _check_type(kind: ContentKind, data: ContentData) -> None:
    expected = DATA_TYPES[kind]
    if not isinstance(data, expected):
        raise TypeError(f"{kind.value} payload expects {expected.__name__}, got {type(data).__name__}")


def format_payload(kind: ContentKind, data: ContentData, *, escape: bool = False) -> str:
    """Return the exact text a QR code of ``kind`` must encode.

    Args:
        kind: Content kind.
        data: Form record matching ``kind`` (see ``DATA_TYPES``).
        escape: Backslash-escape reserved characters in Wi-Fi, vCard and
            calendar fields. Off by default.

    Raises:
        TypeError: If ``data`` is not the record type for ``kind``.
    """
    kind = ContentKind(kind)
    _check_type(kind, data)

    if kind is ContentKind.TEXT:
        return data.url
    if kind is ContentKind.WIFI:
        return format_wifi(data, escape=escape)
    if kind is ContentKind.VCARD:
        return format_vcard(data, escape=escape)
    if kind is ContentKind.CALENDAR:
        return format_calendar(data, escape=escape)
    if kind is ContentKind.PAYMENT:
        return format_payment(data)
    if kind is ContentKind.SOCIAL:
        return format_social(data)
    return data.url


def is_valid(kind: ContentKind, data: ContentData) -> bool:
    """Whether ``data`` holds enough to produce a renderable payload."""
    kind = ContentKind(kind)
    if not isinstance(data, DATA_TYPES[kind]):
        return False

    if kind is ContentKind.TEXT:
        return len(data.url) > 0
    if kind is ContentKind.WIFI:
        return len(data.ssid) > 0
    if kind is ContentKind.VCARD:
        return len(data.first_name) > 0 or len(data.last_name) > 0
    if kind is ContentKind.CALENDAR:
        return len(data.title) > 0
    if kind is ContentKind.PAYMENT:
        return len(data.address) > 0
    if kind is ContentKind.SOCIAL:
        return len(data.username) > 0
    return len(data.url) > 0
