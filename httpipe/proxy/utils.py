"""Utility functions for the proxy server."""

import zlib
from typing import Optional

import brotli
import httpx
from fastapi import Request
from starlette.datastructures import MutableHeaders

# Response headers never relayed as-is: the buffered body may differ in length
# from what the upstream announced.
STRIPPED_RESPONSE_HEADERS = ("content-length", "transfer-encoding")

# The upstream Host is derived from the rewritten URL, and the inbound body is
# already fully read, so httpx sets its own Content-Length.
STRIPPED_REQUEST_HEADERS = ("host", "transfer-encoding")


def decompress_content(content: bytes, encoding: Optional[str]) -> bytes:
    """Decompresses content based on the provided encoding.

    Args:
        content: The byte content to decompress.
        encoding: The content encoding (e.g., 'gzip', 'deflate', 'br'). Case-insensitive.

    Returns:
        The decompressed content as bytes.

    Raises:
        ValueError: If the encoding is unsupported or decompression fails.
    """
    normalized_encoding = encoding.lower() if encoding else None

    if not normalized_encoding or normalized_encoding == "identity":
        return content
    elif normalized_encoding == "gzip":
        try:
            return zlib.decompress(content, wbits=16 + zlib.MAX_WBITS)
        except zlib.error as e:
            raise ValueError(f"Failed to decompress gzip content: {e}") from e
    elif normalized_encoding == "deflate":
        # Negative wbits indicates raw deflate stream without zlib header/checksum
        try:
            return zlib.decompress(content, wbits=-zlib.MAX_WBITS)
        except zlib.error as e:
            # Some servers send deflate with a zlib header
            try:
                return zlib.decompress(content, wbits=zlib.MAX_WBITS)
            except zlib.error:
                raise ValueError(f"Failed to decompress deflate content: {e}") from e
    elif normalized_encoding == "br":
        try:
            return brotli.decompress(content)
        except brotli.error as e:
            raise ValueError(f"Failed to decompress brotli content: {e}") from e
    else:
        raise ValueError(f"Unsupported encoding: {encoding}")


def rewrite_url(upstream: httpx.URL, inbound: httpx.URL) -> httpx.URL:
    """Moves an inbound URL onto the upstream authority.

    Scheme, host and port come from ``upstream``. Path and query are taken
    from ``inbound`` verbatim, and so is the userinfo.
    """
    return upstream.copy_with(
        raw_path=inbound.raw_path,
        username=inbound.username,
        password=inbound.password,
    )


def inbound_url(request: Request) -> httpx.URL:
    """Builds the inbound URL from the ASGI scope without re-encoding the path."""
    raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
    query_string = request.scope.get("query_string") or b""
    if query_string:
        raw_path = raw_path + b"?" + query_string
    base = httpx.URL(str(request.base_url))
    return base.copy_with(raw_path=raw_path)


async def to_httpx_request(request: Request) -> httpx.Request:
    """Converts an inbound FastAPI request into an httpx.Request.

    NOTE: This consumes the request body.
    """
    body = await request.body()
    return httpx.Request(request.method, inbound_url(request), headers=request.headers.raw, content=body)


def copy_headers(dst: MutableHeaders, src: httpx.Headers) -> None:
    """Replaces every header in ``dst`` with the headers of ``src``, keeping repeated values."""
    for key in set(dst.keys()):
        del dst[key]
    for key, value in src.multi_items():
        dst.append(key, value)


def rewrite_request(upstream: httpx.URL, request: httpx.Request) -> httpx.Request:
    """Returns a copy of ``request`` addressed to the upstream.

    Method, headers, body and extensions are kept. The inbound Host and
    Transfer-Encoding headers are dropped.
    """
    headers = [
        (key, value)
        for key, value in request.headers.raw
        if key.decode("latin-1").lower() not in STRIPPED_REQUEST_HEADERS
    ]
    return httpx.Request(
        request.method,
        rewrite_url(upstream, request.url),
        headers=headers,
        content=request.content,
        extensions=request.extensions,
    )
