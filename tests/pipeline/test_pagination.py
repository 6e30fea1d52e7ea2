"""Tests for searchwire.pipeline.pagination module."""

from __future__ import annotations

import base64
import json

import pytest

from searchwire.core.exceptions import InvalidCursorError, ValidationException
from searchwire.pipeline.pagination import (
    CursorCodec,
    CursorPosition,
    decode_cursor,
    encode_cursor,
    paginate,
    paginate_remote,
)

NAMES = [f"index-{i:02d}" for i in range(7)]


def _forge(body: dict, codec: CursorCodec) -> str:
    """Build a correctly sealed cursor around an arbitrary payload."""
    payload = base64.urlsafe_b64encode(json.dumps(body).encode()).decode().rstrip("=")
    return f"v1.{payload}.{codec._mac(payload)}"


# ============================================================================
# CursorCodec Tests
# ============================================================================


class TestCursorCodec:
    """Tests for cursor encoding and verification."""

    def test_decode_what_was_encoded(self):
        """A cursor decodes back to its position."""
        codec = CursorCodec("secret")
        assert codec.decode(codec.encode(20, 10)) == CursorPosition(offset=20, page_size=10)

    def test_opaque_format(self):
        """Cursors are versioned, three-part, URL-safe strings."""
        cursor = encode_cursor(5)
        version, payload, mac = cursor.split(".")
        assert version == "v1"
        assert "=" not in payload
        assert decode_cursor(cursor).offset == 5

    @pytest.mark.parametrize("offset", [-1, 1.5, True, "3"])
    def test_encode_rejects_bad_offset(self, offset):
        """Offsets must be non-negative integers."""
        with pytest.raises(ValueError):
            CursorCodec().encode(offset)

    def test_foreign_key_rejected(self):
        """A cursor sealed under another key is rejected."""
        cursor = CursorCodec("one").encode(10, 5)
        with pytest.raises(InvalidCursorError, match="not issued by this server"):
            CursorCodec("two").decode(cursor)

    def test_tampered_payload_rejected(self):
        """Changing the payload breaks the seal."""
        codec = CursorCodec("k")
        _, _, mac = codec.encode(10, 5).split(".")
        payload = base64.urlsafe_b64encode(b'{"o":0,"ps":5}').decode().rstrip("=")
        with pytest.raises(InvalidCursorError):
            codec.decode(f"v1.{payload}.{mac}")

    @pytest.mark.parametrize("cursor", ["garbage", "v1.only", "a.b.c.d", "v1.é.x"])
    def test_malformed_rejected(self, cursor):
        """Cursors not shaped like v1.payload.mac are rejected."""
        with pytest.raises(InvalidCursorError):
            CursorCodec().decode(cursor)

    def test_empty_rejected(self):
        """An empty cursor is rejected rather than meaning page one."""
        with pytest.raises(InvalidCursorError, match="non-empty"):
            CursorCodec().decode("")

    def test_unknown_version_rejected(self):
        """Only v1 cursors are accepted."""
        codec = CursorCodec()
        _, payload, mac = codec.encode(1).split(".")
        with pytest.raises(InvalidCursorError, match="Unsupported cursor version"):
            codec.decode(f"v2.{payload}.{mac}")

    @pytest.mark.parametrize(
        "body",
        [{"o": -3}, {"o": "10"}, {"o": True}, {"o": 0, "ps": 0}, {"ps": 5}],
    )
    def test_sealed_but_invalid_payload(self, body):
        """A correctly sealed payload must still hold a valid position."""
        codec = CursorCodec("k")
        with pytest.raises(InvalidCursorError):
            codec.decode(_forge(body, codec))

    def test_error_points_at_cursor_field(self):
        """Cursor errors are validation failures on 'cursor'."""
        with pytest.raises(InvalidCursorError) as exc_info:
            CursorCodec().decode("nope")
        assert exc_info.value.field == "cursor"
        assert exc_info.value.retryable is False


# ============================================================================
# paginate Tests
# ============================================================================


class TestPaginate:
    """Tests for local pagination."""

    def test_first_page(self):
        """No cursor starts at the beginning."""
        page = paginate(NAMES, 3)
        assert page.items == NAMES[:3]
        assert page.has_more is True
        assert page.total_count == 7
        assert page.next_cursor

    def test_walks_whole_collection(self):
        """Following cursors visits every item exactly once."""
        seen = []
        cursor = None
        while True:
            page = paginate(NAMES, 3, cursor)
            seen.extend(page.items)
            if not page.has_more:
                assert page.next_cursor is None
                break
            cursor = page.next_cursor
        assert seen == NAMES

    def test_exact_fit_has_no_more(self):
        """A collection that fills the last page exactly ends there."""
        page = paginate(NAMES[:6], 3, paginate(NAMES[:6], 3).next_cursor)
        assert page.items == NAMES[3:6]
        assert page.has_more is False

    def test_empty_collection(self):
        """An empty collection is one empty page."""
        page = paginate([], 10)
        assert page.items == []
        assert page.has_more is False
        assert page.total_count == 0

    def test_page_size_change_rejected(self):
        """A cursor is bound to the page size that produced it."""
        cursor = paginate(NAMES, 3).next_cursor
        with pytest.raises(InvalidCursorError, match="pageSize 3"):
            paginate(NAMES, 4, cursor)

    def test_offset_beyond_end_rejected(self):
        """A cursor past a shrunken collection is rejected."""
        cursor = paginate(NAMES, 3, paginate(NAMES, 3).next_cursor).next_cursor
        with pytest.raises(InvalidCursorError, match="beyond the end"):
            paginate(NAMES[:4], 3, cursor)

    @pytest.mark.parametrize("page_size", [0, -1, True])
    def test_invalid_page_size(self, page_size):
        """Page size must be a positive integer."""
        with pytest.raises(ValidationException) as exc_info:
            paginate(NAMES, page_size)
        assert exc_info.value.field == "pageSize"

    def test_max_page_size(self):
        """Page size is bounded by max_page_size."""
        with pytest.raises(ValidationException, match="at most 5"):
            paginate(NAMES, 6, max_page_size=5)

    def test_codec_is_used(self):
        """Cursors from one codec do not work with another."""
        cursor = paginate(NAMES, 2, codec=CursorCodec("a")).next_cursor
        with pytest.raises(InvalidCursorError):
            paginate(NAMES, 2, cursor, codec=CursorCodec("b"))

    def test_to_dict(self):
        """Wire shape uses camelCase keys."""
        d = paginate(NAMES, 5).to_dict()
        assert set(d) == {"items", "hasMore", "totalCount", "nextCursor"}
        last = paginate(NAMES, 10).to_dict()
        assert "nextCursor" not in last


# ============================================================================
# paginate_remote Tests
# ============================================================================


class TestPaginateRemote:
    """Tests for skip/top pagination against an upstream."""

    @staticmethod
    def _fetcher(data, report_total=True):
        calls = []

        async def fetch_page(skip, top):
            calls.append((skip, top))
            return data[skip : skip + top], (len(data) if report_total else None)

        return fetch_page, calls

    async def test_passes_skip_and_top(self):
        """The cursor offset becomes skip."""
        fetch_page, calls = self._fetcher(NAMES)
        first = await paginate_remote(fetch_page, 4)
        second = await paginate_remote(fetch_page, 4, first.next_cursor)
        assert calls == [(0, 4), (4, 4)]
        assert second.items == NAMES[4:]
        assert second.has_more is False
        assert second.total_count == 7

    async def test_without_total_full_page_means_more(self):
        """Without a count, a full page implies another may follow."""
        fetch_page, _ = self._fetcher(NAMES[:4], report_total=False)
        page = await paginate_remote(fetch_page, 4)
        assert page.has_more is True
        assert page.total_count is None
        last = await paginate_remote(fetch_page, 4, page.next_cursor)
        assert last.items == []
        assert last.has_more is False

    async def test_short_pages_skip_nothing(self):
        """An upstream returning fewer than top items is resumed where it stopped."""
        data = list(range(10))
        calls = []

        async def fetch_page(skip, top):
            calls.append(skip)
            return data[skip : skip + min(top, 3)], len(data)

        seen = []
        page = await paginate_remote(fetch_page, 5)
        seen.extend(page.items)
        while page.has_more:
            page = await paginate_remote(fetch_page, 5, page.next_cursor)
            seen.extend(page.items)
        assert seen == data
        assert calls == [0, 3, 6, 9]
        assert page.next_cursor is None

    async def test_empty_page_ends_walk(self):
        """An empty page has no successor even if the total says otherwise."""

        async def fetch_page(skip, top):
            return [], 10

        page = await paginate_remote(fetch_page, 5)
        assert page.has_more is False
        assert page.next_cursor is None

    async def test_extra_items_trimmed(self):
        """An upstream returning too much is cut to the page size."""

        async def fetch_page(skip, top):
            return NAMES, len(NAMES)

        page = await paginate_remote(fetch_page, 2)
        assert page.items == NAMES[:2]

    async def test_offset_beyond_reported_total(self):
        """A cursor past the upstream total is rejected."""
        fetch_page, _ = self._fetcher(NAMES)
        cursor = encode_cursor(10, 3)
        with pytest.raises(InvalidCursorError, match="beyond the end"):
            await paginate_remote(fetch_page, 3, cursor)

    async def test_page_size_checked_before_fetch(self):
        """Bad page sizes never reach the upstream."""
        fetch_page, calls = self._fetcher(NAMES)
        with pytest.raises(ValidationException):
            await paginate_remote(fetch_page, 100, max_page_size=50)
        assert calls == []
