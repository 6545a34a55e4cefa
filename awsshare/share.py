"""
Share flow: extract the instance on screen and hand it to the composer.

One extraction runs at a time. A share requested while another is in
flight is rejected, and the on-page share control stays disabled until
the running one finishes.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from awsshare import composer, messaging
from awsshare.aggregator import detect_service, scrape_instance
from awsshare.config import Settings
from awsshare.dom import is_valid
from awsshare.errors import ExtractionError
from awsshare.extractors import account, ec2, lightsail
from awsshare.formatter import build_subject, format_body
from awsshare.models import InstanceRecord
from awsshare.tabs import Settle, capture_snapshot

logger = logging.getLogger(__name__)


@dataclass
class ShareResult:
    record: InstanceRecord
    subject: str
    body: str
    full_body: str
    compose: Optional[composer.ComposeResult] = None


class ShareInProgress(Exception):
    """A share was requested while another one is still running."""


def settle_from(settings: Settings) -> Settle:
    return Settle(delay=settings.tab_delay)


def page_identifier(service: str, url: str) -> Optional[str]:
    if service == "ec2":
        return ec2.instance_id_from_url(url)
    if service == "lightsail":
        return lightsail.instance_name_from_url(url)
    return None


class ShareController:
    """Runs the share flow against the page returned by `get_page`."""

    def __init__(self, get_page: Callable, settings: Optional[Settings] = None, settle: Optional[Settle] = None):
        self.get_page = get_page
        self.settings = settings or Settings.load()
        self.settle = settle or settle_from(self.settings)
        self.in_flight = False

    async def _page_service(self, page):
        snapshot = await capture_snapshot(page)
        service = detect_service(snapshot.url)
        if service is None:
            raise ExtractionError(message="Not an EC2 or Lightsail instance page")
        return snapshot, service

    async def details(self) -> InstanceRecord:
        """Extract the instance currently shown, without composing."""
        page = await self.get_page()
        _, service = await self._page_service(page)
        return await scrape_instance(page, service, self.settle)

    async def bodies(self, record: InstanceRecord, page=None):
        """(account_info, compact body, full body) for a record."""
        page = page or await self.get_page()
        snapshot = await capture_snapshot(page)
        account_info = account.extract_account_info(snapshot.top)
        return (
            account_info,
            format_body(record, account_info, compact=True),
            format_body(record, account_info, compact=False),
        )

    async def share(self) -> ShareResult:
        if self.in_flight:
            raise ShareInProgress("A share is already in progress")
        page = await self.get_page()
        self.in_flight = True
        try:
            await messaging.set_share_button_busy(page, True)
            _, service = await self._page_service(page)
            record = await scrape_instance(page, service, self.settle)
            _, body, full_body = await self.bodies(record, page)
            subject = build_subject(record)
            result = await composer.open_composer(
                page, subject, body, full_body=full_body, composer=self.settings.composer
            )
            return ShareResult(record=record, subject=subject, body=body, full_body=full_body, compose=result)
        finally:
            self.in_flight = False
            try:
                await messaging.set_share_button_busy(page, False)
            except Exception as e:
                logger.debug("Could not re-enable share control: %s", e)

    async def watch(self, poll: float = 2.0, on_result: Optional[Callable] = None, on_error: Optional[Callable] = None):
        """Keep a share control on instance pages and serve its clicks.

        Runs until cancelled (Ctrl-C in the CLI).
        """
        while True:
            try:
                page = await self.get_page()
                snapshot = await capture_snapshot(page)
                service = detect_service(snapshot.url)
                identifier = page_identifier(service, snapshot.url) if service else None
                if service and is_valid(identifier):
                    await messaging.inject_share_button(page, service, identifier)
                    if await messaging.take_share_request(page):
                        result = await self.share()
                        if on_result:
                            on_result(result)
            except ShareInProgress:
                logger.debug("Share request ignored, one is already running")
            except Exception as e:
                if on_error:
                    on_error(e)
                else:
                    logger.warning("Share failed: %s", e)
            await asyncio.sleep(poll)
