"""Unit tests for BrowserSession lifecycle with Playwright mocked out."""

from unittest.mock import MagicMock, patch

import pytest

from src.scrapers.browser_session import DESKTOP_USER_AGENT, BrowserSession


@pytest.fixture
def playwright_mocks():
    """Patch sync_playwright and expose the engine, browser and context."""
    with patch("src.scrapers.browser_session.sync_playwright") as mock_sync:
        engine = MagicMock(name="playwright")
        browser = MagicMock(name="browser")
        context = MagicMock(name="context")
        mock_sync.return_value.start.return_value = engine
        engine.chromium.launch.return_value = browser
        browser.new_context.return_value = context
        yield mock_sync, engine, browser, context


@pytest.mark.unit
class TestBrowserSession:
    def test_start_launches_browser_with_desktop_context(self, playwright_mocks):
        mock_sync, engine, browser, _ = playwright_mocks
        session = BrowserSession()

        session.start()

        engine.chromium.launch.assert_called_once_with(headless=True)
        browser.new_context.assert_called_once_with(
            user_agent=DESKTOP_USER_AGENT, ignore_https_errors=True
        )
        assert "Chrome/124.0.0.0" in DESKTOP_USER_AGENT
        assert session.is_started

    def test_start_is_idempotent(self, playwright_mocks):
        mock_sync, engine, _, _ = playwright_mocks
        session = BrowserSession(headless=False)

        session.start()
        session.start()

        mock_sync.return_value.start.assert_called_once()
        engine.chromium.launch.assert_called_once_with(headless=False)

    def test_new_page_starts_lazily_and_shares_context(self, playwright_mocks):
        _, _, browser, context = playwright_mocks
        session = BrowserSession()

        first = session.new_page()
        second = session.new_page()

        browser.new_context.assert_called_once()
        assert context.new_page.call_count == 2
        assert first is context.new_page.return_value
        assert second is context.new_page.return_value

    def test_close_releases_in_order(self, playwright_mocks):
        _, engine, browser, context = playwright_mocks
        order = MagicMock()
        order.attach_mock(context.close, "context_close")
        order.attach_mock(browser.close, "browser_close")
        order.attach_mock(engine.stop, "engine_stop")
        session = BrowserSession()
        session.start()

        session.close()

        assert [c[0] for c in order.mock_calls] == [
            "context_close",
            "browser_close",
            "engine_stop",
        ]
        assert session.is_closed
        assert not session.is_started

    def test_close_ignores_individual_failures(self, playwright_mocks):
        _, engine, browser, context = playwright_mocks
        context.close.side_effect = RuntimeError("context gone")
        browser.close.side_effect = RuntimeError("browser crashed")
        session = BrowserSession()
        session.start()

        session.close()

        engine.stop.assert_called_once()
        assert session.is_closed

    def test_close_is_idempotent(self, playwright_mocks):
        _, engine, browser, _ = playwright_mocks
        session = BrowserSession()
        session.start()

        session.close()
        session.close()

        browser.close.assert_called_once()
        engine.stop.assert_called_once()

    def test_close_without_start(self, playwright_mocks):
        mock_sync, _, _, _ = playwright_mocks
        session = BrowserSession()

        session.close()

        assert session.is_closed
        mock_sync.assert_not_called()

    def test_closed_session_cannot_restart(self, playwright_mocks):
        session = BrowserSession()
        session.close()

        with pytest.raises(RuntimeError, match="closed"):
            session.start()
        with pytest.raises(RuntimeError, match="closed"):
            session.new_page()

    def test_failed_launch_releases_engine(self, playwright_mocks):
        _, engine, _, _ = playwright_mocks
        engine.chromium.launch.side_effect = RuntimeError("Executable doesn't exist")
        session = BrowserSession()

        with pytest.raises(RuntimeError, match="Executable"):
            session.start()

        engine.stop.assert_called_once()
        assert not session.is_started
        assert not session.is_closed

    def test_context_manager_closes(self, playwright_mocks):
        _, _, browser, _ = playwright_mocks

        with BrowserSession() as session:
            session.new_page()

        browser.close.assert_called_once()
        assert session.is_closed
