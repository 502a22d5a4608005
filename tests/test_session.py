"""Tests for session state and first login."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_credential
from popcode_bootstrap.models import Project
from popcode_bootstrap.projects import InMemoryProjectStore
from popcode_bootstrap.session import FirstLogin, SessionState


class TestSessionState:
    def test_starts_logged_out(self):
        session = SessionState()
        assert not session.authenticated
        assert session.credential is None

    def test_authenticate_and_log_out(self):
        session = SessionState()
        credential = make_credential()

        session.user_authenticated(credential)
        assert session.authenticated
        assert session.credential == credential

        session.user_logged_out()
        assert not session.authenticated


class TestFirstLogin:
    """Tests for the FirstLogin operation."""

    @pytest.mark.asyncio
    async def test_announces_then_loads(self):
        calls = []
        announce = MagicMock(side_effect=lambda credential: calls.append("announce"))
        load = AsyncMock(side_effect=lambda: calls.append("load"))
        credential = make_credential()

        await FirstLogin(announce, load)(credential)

        announce.assert_called_once_with(credential)
        load.assert_awaited_once_with()
        assert calls == ["announce", "load"]

    @pytest.mark.asyncio
    async def test_accepts_async_announce_and_sync_load(self):
        announce = AsyncMock()
        load = MagicMock()

        await FirstLogin(announce, load)(make_credential())

        announce.assert_awaited_once()
        load.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_wires_session_and_store(self):
        """The CLI wiring: session learns the user, saved projects are loaded."""
        session = SessionState()
        saved = Project()
        store = InMemoryProjectStore([saved])
        credential = make_credential()

        await FirstLogin(session.user_authenticated, store.load_all_projects)(credential)

        assert session.credential == credential
        assert store.projects == [saved]

    @pytest.mark.asyncio
    async def test_announce_failure_propagates(self):
        load = AsyncMock()

        with pytest.raises(RuntimeError):
            await FirstLogin(MagicMock(side_effect=RuntimeError("boom")), load)(
                make_credential()
            )

        load.assert_not_called()
