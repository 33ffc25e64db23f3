"""Extension inference for proxied downloads.

Signals are tried in priority order: the upstream Content-Disposition
filename, the request URL path, the declared Content-Type and finally the
leading bytes of the body.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse
import logging
import random
import re

from .utils import extract_filename_from_content_disposition

logger = logging.getLogger(__name__)

FALLBACK_EXTENSION = "bin"
FALLBACK_CONTENT_TYPE = "application/octet-stream"
FILENAME_PREFIX = "Cecilefy.xyz_"
SNIFF_WINDOW = 512

# Order matters: the first substring found wins.
CONTENT_TYPE_EXTENSIONS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("mp4",), "mp4"),
    (("webm",), "webm"),
    (("mpeg", "audio/mpeg"), "mp3"),
    (("ogg",), "ogg"),
    (("png",), "png"),
    (("jpeg", "jpg"), "jpg"),
    (("gif",), "gif"),
    (("pdf",), "pdf"),
)

_TRAILING_EXT_RE = re.compile(r"\.([a-z0-9]{2,5})$", re.IGNORECASE)
_PATH_EXT_RE = re.compile(r"\.([a-z0-9]{2,5})(?:$|\?)", re.IGNORECASE)
_BIN_SUFFIX_RE = re.compile(r"\.bin$", re.IGNORECASE)

SuffixFactory = Callable[[], int]


@dataclass(frozen=True)
class ResolvedDownload:
    extension: Optional[str]
    filename: str
    content_type: str

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def random_suffix() -> int:
    return random.randint(100000, 999999)


def ext_from_content_disposition(header_value: Optional[str]) -> Optional[str]:
    filename = extract_filename_from_content_disposition(header_value)
    if not filename:
        return None
    match = _TRAILING_EXT_RE.search(filename)
    return match.group(1).lower() if match else None


def ext_from_path(url: str) -> Optional[str]:
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    match = _PATH_EXT_RE.search(path)
    return match.group(1).lower() if match else None


def ext_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    lowered = content_type.lower()
    for needles, ext in CONTENT_TYPE_EXTENSIONS:
        if any(needle in lowered for needle in needles):
            return ext
    return None


def sniff_extension(first_chunk: Optional[bytes]) -> Optional[str]:
    """Guess an extension from magic bytes; needs at least 4 bytes."""
    if not first_chunk or len(first_chunk) < 4:
        return None
    b0, b1, b2, b3 = first_chunk[0], first_chunk[1], first_chunk[2], first_chunk[3]

    if b0 == 0xFF and b1 == 0xD8 and b2 == 0xFF:
        return "jpg"
    if b0 == 0x89 and b1 == 0x50 and b2 == 0x4E and b3 == 0x47:
        return "png"
    if b0 == 0x47 and b1 == 0x49 and b2 == 0x46:
        return "gif"
    if b0 == 0x1A and b1 == 0x45 and b2 == 0xDF and b3 == 0xA3:
        return "webm"
    if first_chunk[4:8] == b"ftyp":
        return "mp4"
    if first_chunk[:3] == b"ID3":
        return "mp3"
    if b0 == 0xFF and (b1 & 0xE0) == 0xE0:
        return "mp3"
    return None


def resolve_header_extension(
    url: str,
    content_type: Optional[str],
    content_disposition: Optional[str],
) -> Optional[str]:
    """Run the metadata part of the chain, stopping at the first hit."""
    return (
        ext_from_content_disposition(content_disposition)
        or ext_from_path(url)
        or ext_from_content_type(content_type)
    )


def finalize_filename(
    hint: Optional[str],
    extension: Optional[str],
    suffix_factory: SuffixFactory = random_suffix,
) -> str:
    ext = extension or FALLBACK_EXTENSION
    if not hint:
        return f"{FILENAME_PREFIX}{suffix_factory()}.{ext}"
    if extension and _BIN_SUFFIX_RE.search(hint):
        hint = _BIN_SUFFIX_RE.sub(f".{extension}", hint)
    if "." not in hint:
        hint = f"{hint}.{ext}"
    return hint


def finalize_download(
    hint: Optional[str],
    extension: Optional[str],
    content_type: Optional[str],
    suffix_factory: SuffixFactory = random_suffix,
) -> ResolvedDownload:
    filename = finalize_filename(hint, extension, suffix_factory)
    logger.debug(f"Resolved download: extension={extension} filename={filename}")
    return ResolvedDownload(
        extension=extension,
        filename=filename,
        content_type=content_type or FALLBACK_CONTENT_TYPE,
    )
