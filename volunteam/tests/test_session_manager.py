"""
Tests for SessionManager: restore from cache, login/logout ordering,
defensive cache clearing on failures, expiry checks and listeners.
"""

from __future__ import annotations

import json
import tempfile
import unittest
from unittest.mock import AsyncMock, MagicMock

from volunteam.const import ACCESS_TOKEN_KEY, SESSION_KEYS, USER_INFO_KEY
from volunteam.errors import (
    AuthenticationRejected,
    CacheUnavailable,
    LoginFormInvalid,
    NetworkUnreachable,
)
from volunteam.session import SessionManager, SessionState
from volunteam.session_cache import CacheResult, SessionCache

from .test_common import (
    expired_token,
    make_api,
    make_login_response,
    make_raw_token,
    make_session,
    make_user,
    valid_token,
)


class _SessionTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.api = make_api()
        self.session = make_session(self._tmp.name, self.api)
        self.cache: SessionCache = self.session._cache
        self.states: list[SessionState] = []
        self.session.async_add_listener(self.states.append)

    def tearDown(self):
        self._tmp.cleanup()

    async def assertCacheEmpty(self):
        self.assertFalse((await self.cache.async_get(USER_INFO_KEY)).is_found)
        self.assertFalse((await self.cache.async_get(ACCESS_TOKEN_KEY)).is_found)


class TestRestore(_SessionTestCase):

    def test_initial_state_is_restoring(self):
        self.assertIs(self.session.state, SessionState.RESTORING)
        self.assertFalse(self.session.can_navigate_to_map)

    async def test_empty_cache_is_unauthenticated(self):
        state = await self.session.async_restore()
        self.assertIs(state, SessionState.UNAUTHENTICATED)
        self.assertIsNone(self.session.current_user)
        await self.assertCacheEmpty()

    async def test_valid_cached_session_is_authenticated(self):
        user = make_user("u1")
        token = valid_token()
        await self.cache.async_store_session(user, token)

        state = await self.session.async_restore()

        self.assertIs(state, SessionState.AUTHENTICATED)
        self.assertEqual(self.session.current_user, user)
        self.assertEqual(self.session.current_user_id, "u1")
        self.assertEqual(self.session.access_token, token)
        self.assertTrue(self.session.can_navigate_to_map)

    async def test_expired_token_clears_cache(self):
        await self.cache.async_store_session(make_user(), expired_token())

        state = await self.session.async_restore()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        self.assertEqual(self.states, [SessionState.EXPIRED, SessionState.UNAUTHENTICATED])
        await self.assertCacheEmpty()

    async def test_malformed_token_treated_as_expired(self):
        await self.cache.async_store_session(make_user(), "garbage")

        state = await self.session.async_restore()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        self.assertIn(SessionState.EXPIRED, self.states)
        await self.assertCacheEmpty()

    async def test_unrepresentable_expiry_treated_as_expired(self):
        await self.cache.async_store_session(make_user(), make_raw_token({"exp": 10 ** 400}))

        state = await self.session.async_restore()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        self.assertEqual(self.states, [SessionState.EXPIRED, SessionState.UNAUTHENTICATED])
        await self.assertCacheEmpty()

    async def test_token_without_user_is_unauthenticated_and_cleared(self):
        await self.cache.async_set(ACCESS_TOKEN_KEY, valid_token())

        state = await self.session.async_restore()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        await self.assertCacheEmpty()

    async def test_user_without_token_is_unauthenticated_and_cleared(self):
        await self.cache.async_set(USER_INFO_KEY, make_user().to_dict())

        state = await self.session.async_restore()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        await self.assertCacheEmpty()

    async def test_cache_read_failure_fails_closed(self):
        cache = MagicMock()
        cache.async_get_user = AsyncMock(return_value=CacheResult.failed("io error"))
        cache.async_get_token = AsyncMock(return_value=CacheResult.found(valid_token()))
        cache.async_clear = AsyncMock()
        session = SessionManager(cache, make_api())

        state = await session.async_restore()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        cache.async_clear.assert_awaited_once_with(SESSION_KEYS)

    async def test_clear_failure_still_settles_unauthenticated(self):
        cache = MagicMock()
        cache.async_get_user = AsyncMock(return_value=CacheResult.found(make_user()))
        cache.async_get_token = AsyncMock(return_value=CacheResult.found(expired_token()))
        cache.async_clear = AsyncMock(side_effect=CacheUnavailable("stuck"))
        session = SessionManager(cache, make_api())

        state = await session.async_restore()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        self.assertIsNone(session.current_user)


class TestLogin(_SessionTestCase):

    async def asyncSetUp(self):
        await self.session.async_restore()
        self.states.clear()

    async def test_login_success_persists_then_authenticates(self):
        user = make_user("u9")
        token = valid_token()
        self.api.authenticate = AsyncMock(return_value=make_login_response(user, token))

        cached_at_announce = {}

        # Listener sees AUTHENTICATED only after both keys are in the cache
        def listener(state):
            if state is SessionState.AUTHENTICATED:
                path = self.cache._store.path
                with open(path, encoding="utf-8") as fh:
                    cached_at_announce["keys"] = set(json.load(fh))
        self.session.async_add_listener(listener)

        result = await self.session.async_login("  U9@Example.com ", "secret1")

        self.assertEqual(result, user)
        self.assertIs(self.session.state, SessionState.AUTHENTICATED)
        self.api.authenticate.assert_awaited_once_with("u9@example.com", "secret1")
        self.assertEqual((await self.cache.async_get_user()).value, user)
        self.assertEqual((await self.cache.async_get_token()).value, token)
        self.assertEqual(cached_at_announce["keys"], set(SESSION_KEYS))

    async def test_login_writes_cache_before_announcing(self):
        order = []
        cache = MagicMock()
        cache.async_store_session = AsyncMock(side_effect=lambda *a: order.append("write"))
        session = SessionManager(cache, self.api)
        session.async_add_listener(lambda state: order.append(state))

        await session.async_login("a@b.co", "secret1")

        self.assertEqual(order, ["write", SessionState.AUTHENTICATED])

    async def test_invalid_form_never_calls_api(self):
        with self.assertRaises(LoginFormInvalid) as ctx:
            await self.session.async_login("not-an-email", "123")
        self.assertEqual(
            ctx.exception.errors,
            {"email": "invalid_email", "password": "password_too_short"},
        )
        self.api.authenticate.assert_not_awaited()

    async def test_rejected_login_clears_stale_session(self):
        await self.cache.async_store_session(make_user("old"), valid_token())
        self.api.authenticate = AsyncMock(
            side_effect=AuthenticationRejected("Incorrect email or password", 401)
        )

        with self.assertRaises(AuthenticationRejected):
            await self.session.async_login("a@b.co", "secret1")

        self.assertIs(self.session.state, SessionState.UNAUTHENTICATED)
        await self.assertCacheEmpty()

    async def test_network_failure_is_distinct_and_unauthenticated(self):
        self.api.authenticate = AsyncMock(side_effect=NetworkUnreachable("offline"))

        with self.assertRaises(NetworkUnreachable):
            await self.session.async_login("a@b.co", "secret1")

        self.assertIs(self.session.state, SessionState.UNAUTHENTICATED)
        self.assertIsNone(self.session.current_user)

    async def test_cache_write_failure_fails_closed(self):
        cache = MagicMock()
        cache.async_store_session = AsyncMock(side_effect=CacheUnavailable("disk full"))
        cache.async_clear = AsyncMock()
        session = SessionManager(cache, self.api)

        with self.assertRaises(CacheUnavailable):
            await session.async_login("a@b.co", "secret1")

        self.assertIs(session.state, SessionState.UNAUTHENTICATED)
        cache.async_clear.assert_awaited_once_with(SESSION_KEYS)

    async def test_second_login_last_writer_wins(self):
        first, second = make_user("first"), make_user("second")
        self.api.authenticate = AsyncMock(
            side_effect=[make_login_response(first), make_login_response(second)]
        )
        await self.session.async_login("a@b.co", "secret1")
        await self.session.async_login("a@b.co", "secret1")
        self.assertEqual(self.session.current_user_id, "second")
        self.assertEqual((await self.cache.async_get_user()).value.id, "second")


class TestLogout(_SessionTestCase):

    async def test_logout_clears_cache_and_memory(self):
        await self.session.async_login("a@b.co", "secret1")
        await self.session.async_logout()

        self.assertIs(self.session.state, SessionState.UNAUTHENTICATED)
        self.assertIsNone(self.session.current_user)
        self.assertIsNone(self.session.access_token)
        await self.assertCacheEmpty()

    async def test_logout_clears_cache_before_memory(self):
        order = []
        cache = MagicMock()
        cache.async_store_session = AsyncMock()
        session = SessionManager(cache, self.api)
        await session.async_login("a@b.co", "secret1")

        async def clear(keys):
            order.append(("clear", session.current_user_id))
        cache.async_clear = AsyncMock(side_effect=clear)
        session.async_add_listener(lambda state: order.append(state))

        await session.async_logout()

        self.assertEqual(order, [("clear", "u1"), SessionState.UNAUTHENTICATED])

    async def test_logout_clear_failure_still_drops_memory(self):
        cache = MagicMock()
        cache.async_store_session = AsyncMock()
        cache.async_clear = AsyncMock(side_effect=CacheUnavailable("stuck"))
        session = SessionManager(cache, self.api)
        await session.async_login("a@b.co", "secret1")

        with self.assertRaises(CacheUnavailable):
            await session.async_logout()

        self.assertIs(session.state, SessionState.UNAUTHENTICATED)
        self.assertIsNone(session.current_user)


class TestExpiryCheck(_SessionTestCase):

    async def test_expired_in_memory_token_signs_out(self):
        self.api.authenticate = AsyncMock(
            return_value=make_login_response(make_user(), expired_token())
        )
        await self.session.async_login("a@b.co", "secret1")
        self.states.clear()

        state = await self.session.async_check_expiry()

        self.assertIs(state, SessionState.UNAUTHENTICATED)
        self.assertEqual(self.states, [SessionState.EXPIRED, SessionState.UNAUTHENTICATED])
        await self.assertCacheEmpty()

    async def test_valid_token_stays_authenticated(self):
        await self.session.async_login("a@b.co", "secret1")
        self.assertIs(await self.session.async_check_expiry(), SessionState.AUTHENTICATED)

    async def test_noop_when_not_authenticated(self):
        await self.session.async_restore()
        self.assertIs(await self.session.async_check_expiry(), SessionState.UNAUTHENTICATED)


class TestListenersAndHeaders(_SessionTestCase):

    async def test_unsubscribe_stops_notifications(self):
        seen = []
        unsubscribe = self.session.async_add_listener(seen.append)
        unsubscribe()
        await self.session.async_restore()
        self.assertEqual(seen, [])

    async def test_api_receives_token_only_when_authenticated(self):
        self.assertNotIn("Authorization", self.api._headers())
        await self.session.async_login("a@b.co", "secret1")
        self.assertEqual(
            self.api._headers()["Authorization"], f"Bearer {self.session.access_token}"
        )
        self.assertEqual(self.session.auth_headers, self.api._headers())


if __name__ == "__main__":
    unittest.main()
