import logging
import time
from pathlib import Path
from urllib.parse import urlparse

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .accounting import ByteAccountant, ResponseObserver
from .links import detect_link
from .metrics import Failure, TrialResult, round2
from .settings import MeasureConfig

logger = logging.getLogger(__name__)

NAVIGATION_TIMING_JS = """() => {
    const entry = performance.getEntriesByType('navigation')[0];
    return entry ? entry.toJSON() : null;
}"""

DOM_ELEMENT_COUNT_JS = "() => document.querySelectorAll('*').length"


def har_file(config: MeasureConfig, url: str, label: str) -> Path:
    return config.har_path / (urlparse(url).hostname or "unknown") / f"results-{label}.har"


def navigation_durations(entry: dict | None) -> tuple[float | None, float | None]:
    """(domContentLoaded, load) in ms from a PerformanceNavigationTiming entry."""
    if not entry:
        return None, None
    start = entry.get("startTime", 0)
    dcl = entry.get("domContentLoadedEventEnd")
    load = entry.get("loadEventEnd")
    return (
        round2(dcl - start) if dcl is not None else None,
        round2(load - start) if load is not None else None,
    )


async def _close_quietly(resource, what: str, url: str) -> None:
    try:
        await resource.close()
    except Exception as e:
        logger.warning("[PageMtr] Could not close %s for %s: %s", what, url, e)


class TrialRunner:
    """
    Runs timed page visits against one shared Playwright browser.

    - Launches a single browser per context manager (__aenter__/__aexit__)
    - Each trial gets its own browser context and page, closed afterwards
    - Records a HAR file per trial (content omitted) when enabled
    - Timeouts become DNF trials, every other failure an N/A trial
    """

    def __init__(self, config: MeasureConfig):
        self.config = config

        self._playwright = None
        self._browser = None

    async def __aenter__(self):
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.browser_headless,
            )
        except Exception:
            await self._playwright.stop()
            raise
        logger.info("[PageMtr] Browser launched")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        logger.info("[PageMtr] Browser closed")

    async def _new_context(self, url: str, label: str):
        if not self.config.record_har:
            return await self._browser.new_context()
        path = har_file(self.config, url, label)
        path.parent.mkdir(parents=True, exist_ok=True)
        return await self._browser.new_context(
            record_har_path=str(path),
            record_har_content="omit",
        )

    async def run_trial(self, url: str, label: str, find_link: bool = True) -> TrialResult:
        logger.info("[PageMtr] Getting page metrics of %s (%s)", url, label)
        context = None
        page = None
        accountant = ByteAccountant(url)
        observer = ResponseObserver(accountant)

        try:
            context = await self._new_context(url, label)
            page = await context.new_page()
            await page.set_extra_http_headers({
                "User-Agent": self.config.user_agent,
                "Accept-Language": self.config.accept_language,
            })
            observer.register(page)
            return await self._visit(page, url, label, observer, find_link)

        except PlaywrightTimeoutError as e:
            logger.warning("[PageMtr] %s (%s) did not finish: %s", url, label, e)
            return TrialResult.failed(url, label, Failure.DID_NOT_FINISH, str(e))

        except Exception as e:
            logger.warning("[PageMtr] %s (%s) failed: %s", url, label, e)
            return TrialResult.failed(url, label, Failure.NOT_AVAILABLE, str(e))

        finally:
            observer.cancel()
            try:
                observer.unregister()
            except Exception as e:
                logger.warning("[PageMtr] Could not detach response listener for %s: %s", url, e)
            if page is not None:
                await _close_quietly(page, "page", url)
            if context is not None:
                # Closing the context flushes the HAR file
                await _close_quietly(context, "context", url)

    async def _visit(self, page, url: str, label: str, observer: ResponseObserver, find_link: bool) -> TrialResult:
        timeout = self.config.page_timeout_ms

        t0 = time.perf_counter()
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        dom_ready = time.perf_counter() - t0
        await page.wait_for_load_state("load", timeout=timeout)
        loaded = time.perf_counter() - t0

        dcl_ms, load_ms = navigation_durations(await page.evaluate(NAVIGATION_TIMING_JS))
        dom_element_count = await page.evaluate(DOM_ELEMENT_COUNT_JS)

        link = None
        if find_link:
            link = await detect_link(page, self.config.link_strategy)

        await observer.drain(timeout / 1000)
        counts = observer.accountant.snapshot()

        return TrialResult(
            url=url,
            label=label,
            dom_content_loaded_ms=dcl_ms,
            load_ms=load_ms,
            dom_content_loaded_wall_ms=round2(dom_ready * 1000),
            load_wall_ms=round2(loaded * 1000),
            transferred_bytes=counts.total,
            same_origin_bytes=counts.same_origin,
            cross_origin_bytes=counts.cross_origin,
            transferred_resources=counts.resources,
            page_size_mb=round2(counts.total / (1024 * 1024)),
            dom_element_count=dom_element_count,
            resolved_url=page.url,
            detected_link=link.href if link and link.found else None,
            link_found=bool(link and link.found),
        )
