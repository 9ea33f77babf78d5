"""Shared fixtures for review monitor tests."""

from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeDriver:
    """In-memory page driver serving canned HTML keyed by URL.

    A URL with no exact entry falls back to the first key it starts with,
    so ``.../reviews`` can serve every ``.../reviews?page=N`` variant.
    """

    def __init__(self, pages: Dict[str, str], failing: Optional[List[str]] = None) -> None:
        self.pages = pages
        self.failing = failing or []
        self.visited: List[str] = []
        self.clicks: List[str] = []
        self.closed = False
        self._current = ""

    def goto(self, url: str) -> None:
        self.visited.append(url)
        if any(url.startswith(prefix) for prefix in self.failing):
            raise RuntimeError(f"navigation failed: {url}")
        if url in self.pages:
            self._current = self.pages[url]
            return
        for key, html in self.pages.items():
            if url.startswith(key):
                self._current = html
                return
        self._current = "<html><body></body></html>"

    def click_all(self, selector, text_pattern=None, *, limit=None) -> int:
        self.clicks.append(selector)
        return 0

    def wait(self, milliseconds: int) -> None:
        return None

    def wait_for(self, selector: str, timeout_ms: int) -> bool:
        return True

    def scroll_to_bottom(self) -> None:
        return None

    def content(self) -> str:
        return self._current

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def load_fixture() -> Callable[[str], str]:
    return read_fixture


@pytest.fixture
def fake_driver_factory() -> Callable[..., FakeDriver]:
    def factory(pages: Dict[str, str], failing: Optional[List[str]] = None) -> FakeDriver:
        return FakeDriver(pages, failing=failing)

    return factory
