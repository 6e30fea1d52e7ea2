# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Stateless cursor pagination.

A cursor is an opaque token ``v1.<payload>.<mac>``: a base64url JSON
payload holding the offset and page size, sealed with an HMAC so decoding
rejects anything this process did not issue. Nothing is stored between
calls; the cursor alone carries the position.

Decoding is fail-closed. A malformed, tampered, foreign-version,
out-of-range or page-size-mismatched cursor raises ``InvalidCursorError``
instead of silently restarting from the first page.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..core.exceptions import InvalidCursorError, ValidationException

T = TypeVar("T")

CURSOR_VERSION = "v1"
_DEFAULT_KEY = b"searchwire-cursor-v1"
_MAC_BYTES = 12


@dataclass(frozen=True)
class CursorPosition:
    offset: int
    page_size: int | None = None


@dataclass(frozen=True)
class PageResult(Generic[T]):
    """One page of a collection."""

    items: list[T]
    has_more: bool
    total_count: int | None
    next_cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"items": self.items, "hasMore": self.has_more}
        if self.total_count is not None:
            d["totalCount"] = self.total_count
        if self.next_cursor:
            d["nextCursor"] = self.next_cursor
        return d


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


class CursorCodec:
    """Encodes and verifies cursors with a shared key.

    Args:
        secret: Sealing key. Cursors issued under one key are rejected
            under another. A built-in key is used when empty.
    """

    def __init__(self, secret: str | bytes | None = None):
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        self._key = secret or _DEFAULT_KEY

    def _mac(self, payload: str) -> str:
        digest = hmac.new(self._key, f"{CURSOR_VERSION}.{payload}".encode("ascii"), hashlib.sha256).digest()
        return _b64encode(digest[:_MAC_BYTES])

    def encode(self, offset: int, page_size: int | None = None) -> str:
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValueError(f"Cursor offset must be a non-negative integer, got {offset!r}")
        body: dict[str, int] = {"o": offset}
        if page_size is not None:
            body["ps"] = page_size
        payload = _b64encode(json.dumps(body, separators=(",", ":"), sort_keys=True).encode("utf-8"))
        return f"{CURSOR_VERSION}.{payload}.{self._mac(payload)}"

    def decode(self, cursor: str) -> CursorPosition:
        """Verify and unpack a cursor. Pure: no state is read or written."""
        if not isinstance(cursor, str) or not cursor:
            raise InvalidCursorError("Cursor must be a non-empty string", cursor=None)

        parts = cursor.split(".")
        if len(parts) != 3 or not cursor.isascii():
            raise InvalidCursorError("Cursor is malformed", cursor=cursor)
        version, payload, mac = parts
        if version != CURSOR_VERSION:
            raise InvalidCursorError(f"Unsupported cursor version: {version!r}", cursor=cursor)
        if not hmac.compare_digest(mac, self._mac(payload)):
            raise InvalidCursorError("Cursor was not issued by this server or has been altered", cursor=cursor)

        try:
            body = json.loads(_b64decode(payload))
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise InvalidCursorError(f"Cursor payload is unreadable: {e}", cursor=cursor) from e
        if not isinstance(body, dict):
            raise InvalidCursorError("Cursor payload is malformed", cursor=cursor)

        offset = body.get("o")
        page_size = body.get("ps")
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise InvalidCursorError("Cursor offset is invalid", cursor=cursor)
        if page_size is not None and (isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1):
            raise InvalidCursorError("Cursor page size is invalid", cursor=cursor)
        return CursorPosition(offset=offset, page_size=page_size)


_default_codec = CursorCodec()


def encode_cursor(offset: int, page_size: int | None = None, codec: CursorCodec | None = None) -> str:
    return (codec or _default_codec).encode(offset, page_size)


def decode_cursor(cursor: str, codec: CursorCodec | None = None) -> CursorPosition:
    return (codec or _default_codec).decode(cursor)


def _check_page_size(page_size: int, max_page_size: int | None) -> None:
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise ValidationException("pageSize must be a positive integer", field="pageSize", value=page_size)
    if max_page_size is not None and page_size > max_page_size:
        raise ValidationException(
            f"pageSize must be at most {max_page_size}", field="pageSize", value=page_size
        )


def _resolve_offset(
    cursor: str | None,
    page_size: int,
    codec: CursorCodec,
    total: int | None,
) -> int:
    if not cursor:
        return 0
    position = codec.decode(cursor)
    if position.page_size is not None and position.page_size != page_size:
        raise InvalidCursorError(
            f"Cursor was issued for pageSize {position.page_size}, not {page_size}", cursor=cursor
        )
    if total is not None and position.offset >= total:
        raise InvalidCursorError(
            f"Cursor offset {position.offset} is beyond the end of the collection ({total} items)",
            cursor=cursor,
        )
    return position.offset


def paginate(
    collection: Sequence[T],
    page_size: int,
    cursor: str | None = None,
    *,
    codec: CursorCodec | None = None,
    max_page_size: int | None = None,
) -> PageResult[T]:
    """Return the page of ``collection`` that ``cursor`` points at.

    Args:
        collection: Ordered, re-readable sequence (a fresh snapshot per call).
        page_size: Items per page, at least 1.
        cursor: Token from a previous page, or None for the first page.
        codec: Cursor codec; the module default when None.
        max_page_size: Upper bound for ``page_size``.

    Raises:
        ValidationException: ``page_size`` out of bounds.
        InvalidCursorError: The cursor is rejected.
    """
    codec = codec or _default_codec
    _check_page_size(page_size, max_page_size)
    total = len(collection)
    offset = _resolve_offset(cursor, page_size, codec, total)

    items = list(collection[offset : offset + page_size])
    has_more = offset + page_size < total
    return PageResult(
        items=items,
        has_more=has_more,
        total_count=total,
        next_cursor=codec.encode(offset + page_size, page_size) if has_more else None,
    )


async def paginate_remote(
    fetch_page: Callable[[int, int], Awaitable[tuple[Sequence[T], int | None]]],
    page_size: int,
    cursor: str | None = None,
    *,
    codec: CursorCodec | None = None,
    max_page_size: int | None = None,
) -> PageResult[T]:
    """Cursor pagination over an upstream that pages with skip/top.

    ``fetch_page(skip, top)`` returns the items and the total count when the
    upstream reports one. Without a total, a full page is taken to mean
    more items may follow.
    """
    codec = codec or _default_codec
    _check_page_size(page_size, max_page_size)
    offset = _resolve_offset(cursor, page_size, codec, None)

    items, total = await fetch_page(offset, page_size)
    items = list(items)[:page_size]
    if cursor and total is not None and offset >= total:
        raise InvalidCursorError(
            f"Cursor offset {offset} is beyond the end of the collection ({total} items)", cursor=cursor
        )
    # The next page starts after what was actually returned; upstreams may
    # return short pages before the end.
    next_offset = offset + len(items)
    if not items:
        has_more = False
    elif total is not None:
        has_more = next_offset < total
    else:
        has_more = len(items) == page_size
    return PageResult(
        items=items,
        has_more=has_more,
        total_count=total,
        next_cursor=codec.encode(next_offset, page_size) if has_more else None,
    )
