"""
Byte accounting for a single page visit.

ByteAccountant holds the counters and the redirect rule; ResponseObserver
feeds it from Playwright `response` events.

Delivery: Playwright's async API emits `response` events on the event loop.
The listener registered by ResponseObserver is synchronous, so status
filtering, redirect detection and content-length accounting happen in event
order. Responses without a content-length header need `response.body()`;
those reads are queued as tasks and `drain()` waits for them before the
counters are read.
"""

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)


def hostname(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


@dataclass(frozen=True)
class ByteCounts:
    total: int = 0
    same_origin: int = 0
    cross_origin: int = 0
    resources: int = 0


class ByteAccountant:
    """
    Accumulates transferred bytes of one visit, split by same-origin vs
    cross-origin relative to the requested URL's host.

    - Only 2xx responses are counted
    - A 3xx response whose Location points at another host discards all
      counts so far; this happens at most once per visit
    - Body sizes read for responses that arrived before that reset are dropped
    """

    def __init__(self, requested_url: str):
        self.requested_url = requested_url
        self.host = hostname(requested_url)
        self.redirected = False
        # Bumped on every reset; body reads queued earlier are dropped
        self.generation = 0
        self.reset()

    def reset(self) -> None:
        self.total = 0
        self.same_origin = 0
        self.cross_origin = 0
        self.resources = 0

    def is_same_origin(self, url: str) -> bool:
        return hostname(url) == self.host

    def add(self, url: str, size: int, generation: int | None = None) -> None:
        if generation is not None and generation != self.generation:
            logger.debug("[NetMoni] Dropping %d bytes of %s counted before a redirect", size, url)
            return
        self.total += size
        if self.is_same_origin(url):
            self.same_origin += size
        else:
            self.cross_origin += size
        self.resources += 1

    def note_redirect(self, location: str) -> bool:
        """
        Handle a redirect to `location` (absolute). Returns True if the
        counters were reset.
        """
        if self.redirected or hostname(location) == self.host:
            return False
        logger.info("[NetMoni] Cross-origin redirect to %s, discarding %d bytes counted so far", location, self.total)
        self.reset()
        self.generation += 1
        self.redirected = True
        return True

    def snapshot(self) -> ByteCounts:
        return ByteCounts(self.total, self.same_origin, self.cross_origin, self.resources)


def content_length(headers: dict) -> int | None:
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class ResponseObserver:
    """
    Connects a ByteAccountant to a page's `response` events.
    """

    def __init__(self, accountant: ByteAccountant):
        self.accountant = accountant
        self._page = None
        self._pending: set[asyncio.Task] = set()

    def register(self, page) -> None:
        # Clear a previous registration so a reused page never counts twice
        if self._page is not None:
            self._page.remove_listener("response", self.on_response)
        page.on("response", self.on_response)
        self._page = page

    def unregister(self) -> None:
        if self._page is not None:
            self._page.remove_listener("response", self.on_response)
            self._page = None

    def on_response(self, response) -> None:
        try:
            status = response.status
            logger.debug("[NetMoni] %s %s -> %s", response.request.method, response.url, status)

            if 300 <= status < 400:
                location = response.headers.get("location")
                if location:
                    self.accountant.note_redirect(urljoin(response.url, location))
                return

            if status < 200 or status >= 300:
                return

            size = content_length(response.headers)
            if size is not None:
                self.accountant.add(response.url, size)
                return
        except Exception as e:
            logger.warning("[NetMoni] Error processing response: %s", e)
            return

        task = asyncio.ensure_future(self._add_body_size(response, self.accountant.generation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _add_body_size(self, response, generation: int) -> None:
        try:
            body = await response.body()
        except Exception as e:
            # Streamed or redirect bodies may be unavailable; skip this response
            logger.debug("[NetMoni] Body unavailable for %s: %s", response.url, e)
            return
        self.accountant.add(response.url, len(body), generation)

    async def drain(self, timeout_s: float = 5.0) -> None:
        """Wait for queued body reads to finish, cancelling any still running after `timeout_s`."""
        if not self._pending:
            return
        _, pending = await asyncio.wait(set(self._pending), timeout=timeout_s)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("[NetMoni] %d body reads did not finish in %.1fs", len(pending), timeout_s)

    def cancel(self) -> None:
        """Cancel queued body reads, e.g. when the visit failed."""
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
