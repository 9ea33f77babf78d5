"""Page drivers: the rendering collaborators the crawlers talk to.

The extraction engine never navigates on its own. Crawlers hand it the HTML
a driver has rendered, after the driver has clicked whatever buttons expand
lazily loaded content.
"""

from __future__ import annotations

from typing import Any, Optional, Pattern, Protocol, Tuple

from .http_client import DEFAULT_USER_AGENT, FetchConfig, HTTPClient
from .logging_config import get_logger
from .parser_utils import parse_html

logger = get_logger("driver")


class PageDriver(Protocol):
    """Capability set: render a document, click, wait, read the DOM."""

    def goto(self, url: str) -> None: ...

    def click_all(
        self, selector: str, text_pattern: Optional[Pattern[str]] = None, *, limit: Optional[int] = None
    ) -> int: ...

    def wait(self, milliseconds: int) -> None: ...

    def wait_for(self, selector: str, timeout_ms: int) -> bool: ...

    def scroll_to_bottom(self) -> None: ...

    def content(self) -> str: ...

    def close(self) -> None: ...


def _playwright_api() -> Any:
    try:
        from playwright import sync_api
    except ImportError as exc:
        raise RuntimeError(
            "Playwright is required for the browser driver.\n\n"
            "Install:\n"
            "  python3 -m pip install --upgrade playwright\n"
            "  python3 -m playwright install chromium\n"
        ) from exc
    return sync_api


class PlaywrightDriver:
    """Headless Chromium driver built on the Playwright sync API."""

    def __init__(
        self,
        page: Any,
        *,
        navigation_timeout_ms: int = 30000,
        click_wait_ms: int = 500,
        resources: Tuple[Any, ...] = (),
        error_types: Tuple[type, ...] = (),
    ) -> None:
        self.page = page
        self.navigation_timeout_ms = navigation_timeout_ms
        self.click_wait_ms = click_wait_ms
        self._resources = resources
        self._error_types = error_types or (RuntimeError,)

    @classmethod
    def launch(
        cls,
        *,
        headless: bool = True,
        navigation_timeout_ms: int = 30000,
        click_wait_ms: int = 500,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> "PlaywrightDriver":
        api = _playwright_api()
        playwright = api.sync_playwright().start()
        browser = playwright.chromium.launch(headless=headless)
        context = browser.new_context(user_agent=user_agent, viewport={"width": 1280, "height": 900})
        page = context.new_page()
        logger.info(f"Launched Chromium (headless={headless})")
        return cls(
            page,
            navigation_timeout_ms=navigation_timeout_ms,
            click_wait_ms=click_wait_ms,
            resources=(context, browser, playwright),
            error_types=(api.Error,),
        )

    def goto(self, url: str) -> None:
        logger.debug(f"Navigating to {url}")
        self.page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout_ms)

    def click_all(
        self, selector: str, text_pattern: Optional[Pattern[str]] = None, *, limit: Optional[int] = None
    ) -> int:
        """Click every visible match whose text fits ``text_pattern``; return the click count."""
        clicked = 0
        for handle in self.page.query_selector_all(selector):
            if limit is not None and clicked >= limit:
                break
            try:
                text = (handle.text_content() or "").strip()
                if text_pattern is not None and not text_pattern.search(text):
                    continue
                if not handle.is_visible():
                    continue
                handle.scroll_into_view_if_needed()
                self.page.wait_for_timeout(200)
                handle.click()
                self.page.wait_for_timeout(self.click_wait_ms)
                clicked += 1
            except self._error_types as exc:
                logger.debug(f"Skipping stale or hidden element for {selector}: {exc}")
        return clicked

    def wait(self, milliseconds: int) -> None:
        self.page.wait_for_timeout(milliseconds)

    def wait_for(self, selector: str, timeout_ms: int) -> bool:
        try:
            self.page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
        except self._error_types:
            return False
        return True

    def scroll_to_bottom(self) -> None:
        self.page.evaluate("window.scrollTo(0, document.body.scrollHeight);")

    def content(self) -> str:
        return self.page.content()

    def close(self) -> None:
        for resource in self._resources:
            closer = getattr(resource, "close", None) or getattr(resource, "stop", None)
            if closer is not None:
                closer()
        self._resources = ()


class StaticPageDriver:
    """Fetch server-rendered HTML over HTTP; clicks and waits are no-ops.

    Useful when the listing renders archived reviews without JavaScript, and
    for offline runs against saved pages.
    """

    def __init__(self, client: Optional[HTTPClient] = None) -> None:
        self.client = client or HTTPClient()
        self.url: Optional[str] = None
        self._html = ""

    def goto(self, url: str) -> None:
        logger.debug(f"Fetching {url}")
        response = self.client.get(url)
        self.url = str(response.url)
        self._html = response.text

    def click_all(
        self, selector: str, text_pattern: Optional[Pattern[str]] = None, *, limit: Optional[int] = None
    ) -> int:
        return 0

    def wait(self, milliseconds: int) -> None:
        return None

    def wait_for(self, selector: str, timeout_ms: int) -> bool:
        return parse_html(self._html).select_one(selector) is not None

    def scroll_to_bottom(self) -> None:
        return None

    def content(self) -> str:
        return self._html

    def close(self) -> None:
        return None


def create_driver(
    kind: str = "playwright",
    *,
    headless: bool = True,
    navigation_timeout_ms: int = 30000,
    click_wait_ms: int = 500,
    fetch_config: Optional[FetchConfig] = None,
) -> PageDriver:
    """Build a driver by name (``playwright`` or ``static``)."""
    if kind == "playwright":
        return PlaywrightDriver.launch(
            headless=headless,
            navigation_timeout_ms=navigation_timeout_ms,
            click_wait_ms=click_wait_ms,
        )
    if kind == "static":
        return StaticPageDriver(HTTPClient(fetch_config))
    raise ValueError(f"Unknown driver: {kind}")
