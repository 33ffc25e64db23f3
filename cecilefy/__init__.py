"""Core of the Cecilefy download proxy.

Exposes URL validation, filename sanitizing, extension inference and the
upstream relay used by the web API.
"""
from .utils import (
    ProxyRequest,
    UrlValidationResult,
    build_proxy_request,
    extract_filename_from_content_disposition,
    is_valid_http_url,
    sanitize_filename,
    validate_url,
)
from .extensions import (
    ResolvedDownload,
    ext_from_content_disposition,
    ext_from_content_type,
    ext_from_path,
    finalize_download,
    finalize_filename,
    random_suffix,
    resolve_header_extension,
    sniff_extension,
)
from .errors import ProxyError, InputError, UpstreamStatusError, StreamError
from .sources import ByteSource, BufferedSource, HttpxStreamSource, UpstreamMetadata, fetch_upstream
from .relay import RelayState, StreamSession

__version__ = "1.0.0"

__all__ = [
    "ProxyRequest",
    "UrlValidationResult",
    "build_proxy_request",
    "extract_filename_from_content_disposition",
    "is_valid_http_url",
    "sanitize_filename",
    "validate_url",
    "ResolvedDownload",
    "ext_from_content_disposition",
    "ext_from_content_type",
    "ext_from_path",
    "finalize_download",
    "finalize_filename",
    "random_suffix",
    "resolve_header_extension",
    "sniff_extension",
    "ProxyError",
    "InputError",
    "UpstreamStatusError",
    "StreamError",
    "ByteSource",
    "BufferedSource",
    "HttpxStreamSource",
    "UpstreamMetadata",
    "fetch_upstream",
    "RelayState",
    "StreamSession",
]
