"""
Tab navigation and DOM snapshots on the live console page.

These are the only extraction steps that touch the browser. Both run a
small script through ``page.evaluate`` (browser-use requires arrow
function format) against the active document: the EC2 console's
``#compute-react-frame`` iframe when present, the top document otherwise.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Awaitable, Callable, Optional, Tuple

from bs4 import BeautifulSoup

from awsshare.dom import parse_html

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TabSpec:
    """One tab of an instance detail page"""
    name: str
    label: str
    test_id: Optional[str] = None
    href: Optional[str] = None
    delay: float = 2.0


EC2_TABS: Tuple[TabSpec, ...] = (
    TabSpec("details", "Details", test_id="details", delay=1.5),
    TabSpec("security", "Security", test_id="security", delay=2.5),
    TabSpec("networking", "Networking", test_id="networking", delay=2.0),
    TabSpec("storage", "Storage", test_id="storage", delay=2.0),
    TabSpec("tags", "Tags", test_id="tags", delay=1.5),
)

LIGHTSAIL_TABS: Tuple[TabSpec, ...] = (
    TabSpec("connect", "Connect", href="connect", delay=1.5),
    TabSpec("storage", "Storage", href="storage", delay=2.0),
    TabSpec("networking", "Networking", href="networking", delay=2.5),
    TabSpec("domains", "Domains", href="domains", delay=1.5),
    TabSpec("tags", "Tags", href="tags", delay=1.5),
)

TABS = {"ec2": EC2_TABS, "lightsail": LIGHTSAIL_TABS}


@dataclass
class Settle:
    """How long to wait after a tab switch.

    With `until` set, polls that predicate (called with the page) every
    `poll` seconds until it returns True or `timeout` elapses. Otherwise
    sleeps a fixed delay: `delay` if given, else the tab's own delay.
    """
    delay: Optional[float] = None
    until: Optional[Callable[[Any], Awaitable[bool]]] = None
    poll: float = 0.25
    timeout: float = 10.0

    @classmethod
    def immediate(cls) -> "Settle":
        return cls(delay=0)

    async def wait(self, page, tab: Optional[TabSpec] = None):
        if self.until is not None:
            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.timeout
            while not await self.until(page):
                if loop.time() >= deadline:
                    logger.debug("Settle condition not met after %.1fs", self.timeout)
                    return
                await asyncio.sleep(self.poll)
            return

        delay = self.delay
        if delay is None:
            delay = tab.delay if tab else 2.0
        if delay > 0:
            await asyncio.sleep(delay)


# Receives {testId, label, href}; returns "missing", "active" or "clicked"
ACTIVATE_TAB_FN = """(spec) => {
    const frame = document.querySelector('#compute-react-frame');
    const doc = frame && frame.contentDocument ? frame.contentDocument : document;
    let tab = null;
    if (spec.testId) tab = doc.querySelector(`[data-testid="${spec.testId}"]`);
    if (!tab && spec.href) {
        tab = doc.querySelector(`[role="tab"][href*="${spec.href}"]`)
            || doc.querySelector(`a[href$="/${spec.href}"]`)
            || doc.querySelector(`[data-testid*="${spec.href}"][role="tab"]`);
    }
    if (!tab) {
        const wanted = spec.label.toLowerCase();
        for (const el of doc.querySelectorAll('button, [role="tab"]')) {
            if ((el.textContent || '').trim().toLowerCase().includes(wanted)) { tab = el; break; }
        }
    }
    if (!tab) return 'missing';
    const cls = typeof tab.className === 'string' ? tab.className : '';
    if (tab.getAttribute('aria-selected') === 'true' || cls.includes('tabs-tab-active')) return 'active';
    tab.click();
    return 'clicked';
}"""

SNAPSHOT_JS = """() => {
    const frame = document.querySelector('#compute-react-frame');
    let frameHtml = null;
    try {
        if (frame && frame.contentDocument && frame.contentDocument.documentElement) {
            frameHtml = frame.contentDocument.documentElement.outerHTML;
        }
    } catch (e) {
        frameHtml = null;
    }
    return JSON.stringify({
        url: window.location.href,
        title: document.title,
        html: document.documentElement.outerHTML,
        frameHtml: frameHtml
    });
}"""


def js_call(fn: str, *args) -> str:
    """Wrap a JS function and its JSON-encoded arguments as an arrow function."""
    return f"() => ({fn})({', '.join(json.dumps(a) for a in args)})"


def evaluate_result(raw) -> str:
    """String result of page.evaluate, without JSON quoting."""
    return str(raw).strip().strip('"')


def activate_tab_script(tab: TabSpec) -> str:
    spec = {"testId": tab.test_id or "", "label": tab.label, "href": tab.href or ""}
    return js_call(ACTIVATE_TAB_FN, spec)


async def activate_tab(page, tab: TabSpec, settle: Optional[Settle] = None) -> bool:
    """Switch to a tab. Returns False if no matching tab control exists.

    Waits out the settle policy only when a click actually happened.
    """
    status = evaluate_result(await page.evaluate(activate_tab_script(tab)))
    if status == "missing":
        logger.debug("Tab %r not found on page", tab.name)
        return False
    if status == "clicked":
        await (settle or Settle()).wait(page, tab)
    else:
        logger.debug("Tab %r already active", tab.name)
    return True


@dataclass
class Snapshot:
    """HTML of the console page at one point in time"""
    url: str
    html: str
    frame_html: Optional[str] = None
    title: str = ""

    @cached_property
    def top(self) -> BeautifulSoup:
        return parse_html(self.html)

    @cached_property
    def document(self) -> BeautifulSoup:
        """The active document: the instance iframe if present"""
        if self.frame_html:
            return parse_html(self.frame_html)
        return self.top


async def capture_snapshot(page) -> Snapshot:
    raw = await page.evaluate(SNAPSHOT_JS)
    data = json.loads(raw) if isinstance(raw, str) else raw
    return Snapshot(
        url=data.get("url") or "",
        html=data.get("html") or "",
        frame_html=data.get("frameHtml"),
        title=data.get("title") or "",
    )
