from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse
import re

import httpx

from .errors import InputError

ALLOWED_SCHEMES = ("http", "https")
MAX_FILENAME_LENGTH = 200


@dataclass(frozen=True)
class UrlValidationResult:
    is_valid: bool
    message: str


@dataclass(frozen=True)
class ProxyRequest:
    target_url: str
    filename_hint: Optional[str] = None


def validate_url(url: Optional[str]) -> UrlValidationResult:
    if not url:
        return UrlValidationResult(False, "URL is empty")
    try:
        parsed = urlparse(url)
        # Accessing .port raises ValueError for a malformed port
        parsed.port
    except ValueError:
        return UrlValidationResult(False, "URL is malformed")
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return UrlValidationResult(False, "URL must use http or https")
    if not parsed.hostname:
        return UrlValidationResult(False, "URL must be absolute")
    if any(ch.isspace() for ch in parsed.netloc):
        return UrlValidationResult(False, "URL host is malformed")
    try:
        # Same parser the upstream client uses; .host decodes IDNA labels
        httpx.URL(url).host
    except (httpx.InvalidURL, UnicodeError) as e:
        return UrlValidationResult(False, f"URL is malformed: {e}")
    return UrlValidationResult(True, "OK")


def is_valid_http_url(url: Optional[str]) -> bool:
    """Simple boolean wrapper for validate_url."""
    return validate_url(url).is_valid


_STRIP_CHARS = re.compile(r"[\"'\r\n\\]")
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\-_.() ]")


def sanitize_filename(name: str) -> str:
    """Make a caller supplied name safe for a Content-Disposition header.

    Quotes, CR/LF and backslashes are dropped, anything else outside
    ``[A-Za-z0-9-_.() ]`` becomes ``_`` and the result is capped at 200 chars.
    """
    name = _STRIP_CHARS.sub("", str(name))
    name = _UNSAFE_CHARS.sub("_", name)
    return name[:MAX_FILENAME_LENGTH]


def build_proxy_request(url: Optional[str], filename: Optional[str] = None) -> ProxyRequest:
    check = validate_url(url)
    if not check.is_valid:
        raise InputError(f"Invalid url: {check.message}")
    hint = sanitize_filename(filename) if filename and filename.strip() else None
    return ProxyRequest(target_url=url, filename_hint=hint)


_FILENAME_RE = re.compile(r"filename\*?=(?:UTF-8'')?[\"']?(?P<name>[^;\"']+)", re.IGNORECASE)


def extract_filename_from_content_disposition(header_value: Optional[str]) -> Optional[str]:
    if not header_value:
        return None
    match = _FILENAME_RE.search(header_value)
    if not match:
        return None
    filename = unquote(match.group("name")).strip()
    return filename or None
