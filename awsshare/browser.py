"""
Browser session for the AWS Console.

Supports multiple browser modes via Settings (see awsshare.config):
    - chromium: Default isolated browser (log in every run)
    - chrome: Use your Chrome profile, keeping an existing console login
    - cdp: Connect to an already-running Chrome instance
"""
import asyncio
import contextlib
import io
import logging
from typing import Callable, Optional

from awsshare.config import Settings
from awsshare.errors import BrowserNotStarted, LoginTimeout
from awsshare.tabs import Snapshot, capture_snapshot, evaluate_result

logger = logging.getLogger(__name__)

CONSOLE_HOSTS = ("console.aws.amazon.com", "lightsail.aws.amazon.com")
SIGNIN_MARKERS = ("signin", "/login")

# Console chrome that only renders once a session exists
LOGGED_IN_JS = """() => {
    const marker = document.querySelector(
        'meta[name="awsc-session-data"], #awsc-nav-header, [data-testid="awsc-nav-header"], #nav-usernameMenu'
    );
    return marker ? 'yes' : 'no';
}"""

STEALTH_JS = """
    () => {
        // Patch navigator.webdriver
        Object.defineProperty(navigator, 'webdriver', {
            get: () => undefined
        });

        // Patch chrome runtime
        window.chrome = {
            runtime: {}
        };

        // Patch permissions
        const originalQuery = window.navigator.permissions.query;
        window.navigator.permissions.query = (parameters) => (
            parameters.name === 'notifications' ?
                Promise.resolve({ state: Notification.permission }) :
                originalQuery(parameters)
        );

        // Patch languages
        Object.defineProperty(navigator, 'languages', {
            get: () => ['en-US', 'en']
        });
    }
"""


class ConsoleBrowser:
    """A single browser page driven through the AWS Console.

    Settings come from the .env file and environment; explicit arguments
    override them.
    """

    def __init__(self, settings: Optional[Settings] = None, headless: bool = None, stealth: bool = None):
        self.settings = settings or Settings.load()
        self.session = None
        self.headless = self.settings.headless if headless is None else headless
        self.stealth = self.settings.stealth if stealth is None else stealth

    def _session_kwargs(self) -> dict:
        settings = self.settings
        session_kwargs = {"headless": self.headless}

        if settings.browser_mode == "chrome":
            # Use Chrome with user profile (keeps console login)
            session_kwargs["channel"] = "chrome"
            session_kwargs["executable_path"] = "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"

            if settings.chrome_user_data:
                session_kwargs["user_data_dir"] = settings.chrome_user_data
                session_kwargs["profile_directory"] = settings.chrome_profile

        elif settings.browser_mode == "cdp":
            session_kwargs["cdp_url"] = settings.cdp_endpoint

        if self.stealth:
            session_kwargs["disable_security"] = True
        return session_kwargs

    async def start(self):
        """Initialize browser based on configuration."""
        from browser_use import BrowserSession

        self.session = BrowserSession(**self._session_kwargs())
        await self.session.start()

        if self.stealth:
            await self._apply_stealth_patches()

    async def _apply_stealth_patches(self):
        """Apply JavaScript patches to avoid bot detection."""
        page = await self.page()
        try:
            # Suppress DEBUG output from evaluate
            with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
                await page.evaluate(STEALTH_JS)
        except Exception as e:
            logger.debug("Stealth patches not applied: %s", e)

    async def page(self):
        if self.session is None:
            raise BrowserNotStarted()
        return await self.session.get_current_page()

    async def goto(self, url: str):
        """Navigate and wait for the console to render."""
        if self.session is None:
            raise BrowserNotStarted()
        if not url.startswith(("http://", "https://")):
            url = "https://" + url

        await self.session.navigate_to(url)
        if self.stealth:
            await self._apply_stealth_patches()
        if self.settings.page_settle > 0:
            await asyncio.sleep(self.settings.page_settle)
        return await self.page()

    async def current_url(self) -> str:
        if self.session is None:
            raise BrowserNotStarted()
        return await self.session.get_current_page_url()

    async def snapshot(self) -> Snapshot:
        return await capture_snapshot(await self.page())

    async def is_logged_in(self) -> bool:
        url = await self.current_url()
        if any(marker in url for marker in SIGNIN_MARKERS):
            return False
        if not any(host in url for host in CONSOLE_HOSTS):
            return False
        page = await self.page()
        try:
            return evaluate_result(await page.evaluate(LOGGED_IN_JS)) == "yes"
        except Exception as e:
            logger.debug("Login check failed: %s", e)
            return False

    async def wait_for_login(self, timeout: float = 300, notify: Optional[Callable[[str], None]] = None):
        """Poll until the console shows a logged-in page.

        Raises LoginTimeout once `timeout` seconds pass without a login.
        """
        poll = self.settings.login_poll
        loop = asyncio.get_running_loop()
        start = loop.time()
        last_notice = start

        while not await self.is_logged_in():
            now = loop.time()
            if now - start >= timeout:
                raise LoginTimeout(timeout)
            if notify and now - last_notice >= 30:
                notify(f"Still waiting for login... ({int(now - start)}s elapsed)")
                last_notice = now
            await asyncio.sleep(poll)

    async def close(self):
        """Cleanup"""
        if self.session:
            await self.session.stop()
            self.session = None
