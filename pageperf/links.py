"""
Secondary page detection.

Two strategies:
- "homepage": guess the site's canonical home link by scanning anchors
  against HOMEPAGE_SELECTORS in priority order
- "other": take the first same-host link that is not the index page itself
"""

import logging
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

from .metrics import Failure

logger = logging.getLogger(__name__)

HOMEPAGE_SELECTORS = [
    'a[href="/"]',
    'a[href="/index.html"]',
    'a[href="/home.html"]',
    'a:has(img[alt*="logo" i])',
    'a:has(img[alt*="home" i])',
    'a:has(img[alt*="site title" i])',
    'a:has(img[alt])',
    'a:has(img[class*="logo" i])',
    'a:has(img[src*="logo" i])',
    'a:has(img[src*="home" i])',
    'a:has(img)',
    'a:has-text("Home")',
    'a:has-text("home")',
    'a:has-text("Blog")',
    'a:has-text("Main")',
    'h1 a, h2 a',
    'a[title*="Home" i]',
    'a[aria-label*="Home" i]',
    'a[rel="home"]',
    'a[rel="start"]',
    'a.navbar-brand',
    'a#logo',
    'a.home-link',
    'a.site-title',
    '.site-header a',
    'a[href*="/"]',
]

INDEX_FILENAMES = ("/index.html", "/home.html")


@dataclass(frozen=True)
class LinkResult:
    found: bool
    href: str

    @classmethod
    def not_found(cls) -> "LinkResult":
        return cls(False, Failure.NOT_AVAILABLE.value)


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def is_short_path(path: str) -> bool:
    segments = [p for p in path.split("/") if p]
    return path == "/" or len(segments) <= 1 or path.endswith(INDEX_FILENAMES)


class HomepageSearch:
    """
    Selection state of the homepage heuristic.

    - A root link ("/") is accepted immediately and ends the search
    - An index filename link is accepted unless a root link was recorded
    - Otherwise the first short same-origin path is kept as a fallback
    - After each selector, the search stops once anything was accepted
    """

    def __init__(self, origin: str):
        self.origin = origin
        self.root = origin + "/"
        self.href: str | None = None
        self.done = False

    @property
    def found(self) -> bool:
        return self.href is not None

    def consider(self, href: str | None, base_url: str) -> bool:
        """
        Offer one anchor href. Returns True when the current selector's
        anchors need not be scanned any further.
        """
        if not href:
            return False
        absolute = urljoin(base_url, href)
        if origin_of(absolute) != self.origin:
            return False

        path = urlparse(absolute).path or "/"
        if href == "/" or absolute == self.root:
            self.href = absolute
            self.done = True
            logger.debug("[LinkFinder] Root link: %s", absolute)
            return True

        if path in INDEX_FILENAMES:
            if self.href != self.root:
                self.href = absolute
                logger.debug("[LinkFinder] Index filename link: %s", absolute)
            return True

        if is_short_path(path) and not self.found:
            self.href = absolute
            logger.debug("[LinkFinder] Short path fallback: %s", absolute)
        return False

    def end_selector(self) -> None:
        if self.found:
            self.done = True

    def result(self) -> LinkResult:
        if self.href is None:
            return LinkResult.not_found()
        return LinkResult(True, self.href)


async def _scan(page, selector: str, accept) -> None:
    """Feed hrefs of the anchors matching `selector` to `accept` until it returns True."""
    locators = page.locator(selector)
    count = await locators.count()
    for i in range(count):
        if accept(await locators.nth(i).get_attribute("href")):
            return


async def find_homepage_link(page, origin: str | None = None) -> LinkResult:
    """
    Scan the loaded page for a link back to the site's home page.

    `origin` defaults to the origin of page.url; anchors resolving anywhere
    else are ignored.
    """
    base_url = page.url
    search = HomepageSearch(origin or origin_of(base_url))

    for selector in HOMEPAGE_SELECTORS:
        await _scan(page, selector, lambda href: search.consider(href, base_url))
        search.end_selector()
        if search.done:
            break

    result = search.result()
    if result.found:
        logger.info("[LinkFinder] Homepage link on %s: %s", base_url, result.href)
    else:
        logger.info("[LinkFinder] No suitable homepage link found on %s", base_url)
    return result


def is_other_page_href(href: str | None, page_url: str) -> bool:
    if not href or href in ("/", "/index.html") or href.startswith(("#", "?")):
        return False
    parsed = urlparse(href)
    if parsed.scheme and parsed.scheme not in ("http", "https"):
        return False
    if parsed.netloc and parsed.hostname != urlparse(page_url).hostname:
        return False
    return True


async def find_other_link(page) -> LinkResult:
    """First anchor that leads to another page on the same host."""
    hits = []

    def accept(href):
        if is_other_page_href(href, page.url):
            hits.append(href)
            return True
        return False

    await _scan(page, "a", accept)
    return LinkResult(True, hits[0]) if hits else LinkResult.not_found()


async def detect_link(page, strategy: str = "homepage") -> LinkResult:
    if strategy == "other":
        return await find_other_link(page)
    return await find_homepage_link(page)
