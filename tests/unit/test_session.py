"""
Unit tests for the Session lifecycle.

Tests cover:
- Identifier resolution from signed cookies
- start() for new, stored and forged sessions
- Data accessors and the not-started guard
- destroy(), roll(), touch() and duration handling
"""

from unittest.mock import AsyncMock, patch

import pytest

from errors.codes import ErrorCode
from errors.exceptions import InvalidArgumentError, SessionNotStartedError
from middleware.signing import sign
from session.session import DURATION_KEY

SECRET = "test-secret-0123456789"
COOKIE = "default_sess"


class TestIdentifierResolution:
    """Tests for the id and signed_id accessors."""

    def test_valid_cookie_resolves_id(self, make_session):
        signed = sign("abc123", SECRET)
        session, _ = make_session({COOKIE: signed})

        assert session.id == "abc123"
        assert session.signed_id == signed

    def test_forged_cookie_leaves_id_unset(self, make_session):
        session, _ = make_session({COOKIE: sign("abc123", "some-other-secret")})

        assert session.id is None
        assert session.signed_id is None

    def test_missing_cookie_leaves_id_unset(self, make_session):
        session, _ = make_session()

        assert session.id is None

    def test_cookie_is_parsed_once(self, make_session):
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})
        request = session._request

        with patch.object(request, "unsign", wraps=request.unsign) as unsign:
            assert session.id == "abc123"
            assert session.id == "abc123"

        assert unsign.call_count == 1

    def test_signed_id_is_computed_from_raw_id(self, make_session):
        session, _ = make_session()
        session.set_id("abc123")

        assert session.signed_id == sign("abc123", SECRET)

    def test_set_id_requires_string(self, make_session):
        session, _ = make_session()

        with pytest.raises(InvalidArgumentError):
            session.set_id(123)

    def test_set_id_discards_cached_signed_id(self, make_session):
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})
        assert session.signed_id == sign("abc123", SECRET)

        session.set_id("def456")

        assert session.id == "def456"
        assert session.signed_id == sign("def456", SECRET)

    def test_set_signed_id_with_valid_signature(self, make_session):
        session, _ = make_session()

        assert session.set_signed_id(sign("abc123", SECRET)) is True
        assert session.id == "abc123"
        assert session.signed_id == sign("abc123", SECRET)

    def test_set_signed_id_with_explicit_secret(self, make_session):
        session, _ = make_session()
        other_secret = "explicit-secret-value"

        assert session.set_signed_id(sign("abc123", other_secret), other_secret) is True
        assert session.id == "abc123"

    def test_set_signed_id_with_bad_signature_keeps_state(self, make_session):
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})

        assert session.set_signed_id(sign("evil", "some-other-secret")) is False
        assert session.id == "abc123"

    @pytest.mark.asyncio
    async def test_generate_id_uses_engine_id_operation(self, make_session, engine):
        engine.use("id", AsyncMock(return_value="generated-id"))
        session, _ = make_session()

        assert await session.generate_id() == "generated-id"


class TestStart:
    """Tests for Session.start()."""

    @pytest.mark.asyncio
    async def test_new_session_gets_generated_id_without_read(self, make_session, store):
        session, _ = make_session()

        await session.start()

        assert session.ready is True
        assert session.stored is False
        assert isinstance(session.id, str) and session.id
        assert session.get() == {}
        assert store.count("read") == 0

    @pytest.mark.asyncio
    async def test_stored_session_is_read_once(self, make_session, store):
        store.records["abc123"] = {"user": "alice"}
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})

        await session.start()
        await session.start()

        assert store.calls == [("read", "abc123")]
        assert session.stored is True
        assert session.get() == {"user": "alice"}
        assert session.get("user") == "alice"

    @pytest.mark.asyncio
    async def test_unknown_session_id_is_not_stored(self, make_session, store):
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})

        await session.start()

        assert store.count("read") == 1
        assert session.ready is True
        assert session.stored is False
        assert session.id == "abc123"
        assert session.get() == {}

    @pytest.mark.asyncio
    async def test_non_mapping_read_result_is_ignored(self, make_session, engine):
        engine.use("read", AsyncMock(return_value="not-a-dict"))
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})

        await session.start()

        assert session.stored is False
        assert session.get() == {}

    @pytest.mark.asyncio
    async def test_forged_cookie_behaves_like_new_session(self, make_session, store):
        session, _ = make_session({COOKIE: sign("abc123", "some-other-secret")})

        await session.start()

        assert session.stored is False
        assert session.id != "abc123"
        assert store.count("read") == 0

    @pytest.mark.asyncio
    async def test_read_failure_propagates(self, make_session, engine):
        engine.use("read", AsyncMock(side_effect=ConnectionError("store down")))
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})

        with pytest.raises(ConnectionError):
            await session.start()

        assert session.ready is False


class TestDataAccessors:
    """Tests for set/get/delete/reset and the not-started guard."""

    @pytest.mark.parametrize(
        "call, method",
        [
            (lambda s: s.get(), "get"),
            (lambda s: s.set("a", 1), "set"),
            (lambda s: s.delete("a"), "delete"),
            (lambda s: s.reset({}), "reset"),
        ],
    )
    def test_accessors_require_start(self, make_session, call, method):
        session, _ = make_session()

        with pytest.raises(SessionNotStartedError) as exc_info:
            call(session)

        assert exc_info.value.method == method
        assert exc_info.value.error_code == ErrorCode.SESSION_NOT_STARTED
        assert f"{method}()" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_roll_requires_start(self, make_session):
        session, _ = make_session()

        with pytest.raises(SessionNotStartedError) as exc_info:
            await session.roll()

        assert exc_info.value.method == "roll"

    @pytest.mark.asyncio
    async def test_set_then_get(self, make_session):
        session, _ = make_session()
        await session.start()

        result = session.set("cart", [1, 2])

        assert result is session
        assert session.get("cart") == [1, 2]
        assert session._persist is True

    @pytest.mark.asyncio
    async def test_bulk_set_merges(self, make_session):
        session, _ = make_session()
        await session.start()
        session.set("a", 1)

        session.set({"b": 2, "c": 3})

        assert session.get() == {"a": 1, "b": 2, "c": 3}

    @pytest.mark.asyncio
    async def test_set_rejects_bad_name(self, make_session):
        session, _ = make_session()
        await session.start()

        with pytest.raises(InvalidArgumentError):
            session.set(42, "value")

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self, make_session):
        session, _ = make_session()
        await session.start()

        assert session.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_single_key(self, make_session):
        session, _ = make_session()
        await session.start()
        session.set({"a": 1, "b": 2})
        session._persist = False

        assert session.delete("a") is session
        assert session.get() == {"b": 2}
        assert session._persist is True

    @pytest.mark.asyncio
    async def test_delete_all(self, make_session):
        session, _ = make_session()
        await session.start()
        session.set({"a": 1, "b": 2})
        session._persist = False

        session.delete()

        assert session.get() == {}
        assert session._persist is True

    @pytest.mark.asyncio
    async def test_reset_replaces_data(self, make_session):
        session, _ = make_session()
        await session.start()
        session.set("a", 1)

        session.reset({"b": 2})

        assert session.get() == {"b": 2}
        assert session._persist is True

    @pytest.mark.asyncio
    async def test_reset_requires_mapping(self, make_session):
        session, _ = make_session()
        await session.start()

        with pytest.raises(InvalidArgumentError):
            session.reset(["a"])


class TestDestroy:
    """Tests for Session.destroy()."""

    @pytest.mark.asyncio
    async def test_destroy_stored_session(self, make_session, store):
        store.records["abc123"] = {"user": "alice"}
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})
        await session.start()

        await session.destroy()

        assert store.count("destroy") == 1
        assert "abc123" not in store.records
        assert session.destroyed is True
        assert session.get() == {}

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, make_session, store):
        store.records["abc123"] = {"user": "alice"}
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})
        await session.start()

        await session.destroy()
        await session.destroy()

        assert store.count("destroy") == 1

    @pytest.mark.asyncio
    async def test_destroy_starts_session_first(self, make_session, store):
        store.records["abc123"] = {"user": "alice"}
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})

        await session.destroy()

        assert store.calls == [("read", "abc123"), ("destroy", "abc123")]
        assert session.ready is True

    @pytest.mark.asyncio
    async def test_destroy_without_id_is_noop(self, make_session, store):
        session, _ = make_session()

        await session.destroy()

        assert session.destroyed is False
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_destroy_new_session_skips_backend(self, make_session, store):
        session, _ = make_session()
        await session.start()

        await session.destroy()

        assert store.count("destroy") == 0
        assert session.destroyed is True


class TestRoll:
    """Tests for Session.roll()."""

    @pytest.mark.asyncio
    async def test_roll_stored_session(self, make_session, store):
        store.records["abc123"] = {"user": "alice"}
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})
        await session.start()

        assert await session.roll() is True

        assert store.count("destroy") == 1
        assert session.id != "abc123"
        assert session.stored is False
        assert session.destroyed is False
        assert session._persist is True
        assert session.signed_id == sign(session.id, SECRET)

    @pytest.mark.asyncio
    async def test_roll_keeps_data(self, make_session, store):
        store.records["abc123"] = {"user": "alice"}
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})
        await session.start()

        await session.roll()

        assert session.get() == {"user": "alice"}

    @pytest.mark.asyncio
    async def test_roll_new_session_skips_destroy(self, make_session, store):
        session, _ = make_session()
        await session.start()
        old_id = session.id

        await session.roll()

        assert store.count("destroy") == 0
        assert session.id != old_id

    @pytest.mark.asyncio
    async def test_roll_revives_destroyed_session(self, make_session):
        session, _ = make_session()
        await session.start()
        await session.destroy()

        await session.roll()

        assert session.destroyed is False


class TestTouch:
    """Tests for Session.touch()."""

    @pytest.mark.asyncio
    async def test_touch_without_id_is_noop(self, make_session, store):
        session, _ = make_session()

        await session.touch()

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_touch_delegates_to_backend(self, make_session, store):
        session, _ = make_session({COOKIE: sign("abc123", SECRET)})

        await session.touch()

        assert store.calls == [("touch", "abc123")]


class TestDuration:
    """Tests for duration, set_duration() and expires_at."""

    def test_default_duration_comes_from_engine(self, make_session):
        session, _ = make_session()

        assert session.duration == 1000 * 60 * 30

    @pytest.mark.asyncio
    async def test_set_duration_overrides_engine_default(self, make_session):
        session, _ = make_session()
        await session.start()

        session.set_duration(5000)

        assert session.duration == 5000
        assert session.get(DURATION_KEY) == 5000

    @pytest.mark.asyncio
    async def test_expires_at_uses_custom_duration(self, make_session):
        session, _ = make_session()
        await session.start()
        session.set_duration(5000)

        with patch("session.session.time.time", return_value=1_700_000_000.0):
            assert session.expires_at == 1_700_000_000_000 + 5000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [0, -5, "5000", None, True])
    async def test_set_duration_rejects_invalid_values(self, make_session, duration):
        session, _ = make_session()
        await session.start()

        with pytest.raises(InvalidArgumentError):
            session.set_duration(duration)

    def test_set_duration_requires_start(self, make_session):
        session, _ = make_session()

        with pytest.raises(SessionNotStartedError):
            session.set_duration(5000)

    @pytest.mark.asyncio
    async def test_non_numeric_override_is_ignored(self, make_session):
        session, _ = make_session()
        await session.start()
        session.set(DURATION_KEY, "forever")

        assert session.duration == 1000 * 60 * 30
