"""
AWS Instance Share CLI
Fetches full EC2 and Lightsail instance details from the AWS Console

A browser window opens on the console; log in there and the CLI walks
every instance's tabs, then writes the results as JSON or CSV.

Run: awsshare --service ec2 --region us-east-1 --output instances.csv

Options:
  --service <ec2|lightsail|all>  Service to fetch (default: all)
  --region <code>                AWS region (e.g. us-east-1)
  --output <path>                .csv selects CSV, anything else JSON
  --timeout <seconds>            Login wait budget (default: 300)
  --headless                     Headless browser (login needs a window)
  --debug                        Verbose logging
  --watch                        Serve share buttons on instance pages instead
  --composer <name>              Save the mail composer used by --watch
"""
import os
import logging
import sys

# Suppress third-party output before browser_use is imported
os.environ["BROWSER_USE_LOGGING_LEVEL"] = "CRITICAL"
os.environ["PLAYWRIGHT_DEBUG"] = "0"
for name in ['browser_use', 'cdp_use', 'playwright', 'asyncio', 'urllib3', 'httpx']:
    logging.getLogger(name).setLevel(logging.CRITICAL)
    logging.getLogger(name).disabled = True

import argparse
import asyncio
import threading
import time
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from awsshare import export
from awsshare.aggregator import scrape_instance
from awsshare.browser import ConsoleBrowser
from awsshare.composer import COMPOSERS
from awsshare.config import Settings, save_composer
from awsshare.extractors import account, ec2, lightsail
from awsshare.share import ShareController, settle_from
from awsshare.tabs import Settle

AWS_CONSOLE_URL = "https://console.aws.amazon.com/"
LIGHTSAIL_URL = "https://lightsail.aws.amazon.com/ls/webapp"
DEFAULT_OUTPUT = "aws-instances.json"


# ANSI color codes for terminal output
class Colors:
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RESET = '\033[0m'

    @classmethod
    def disable(cls):
        """Disable colors (for non-TTY output)"""
        cls.HEADER = cls.BLUE = cls.CYAN = cls.GREEN = ''
        cls.YELLOW = cls.RED = cls.BOLD = cls.DIM = cls.RESET = ''


# Disable colors if not a TTY
if not sys.stdout.isatty():
    Colors.disable()

DEBUG = False


def log(message: str, kind: str = "info"):
    C = Colors
    prefix = f"[{datetime.now().strftime('%H:%M:%S')}]"
    if kind == "success":
        print(f"{C.GREEN}{prefix} ✓ {message}{C.RESET}")
    elif kind == "error":
        print(f"{C.RED}{prefix} ✗ {message}{C.RESET}")
    elif kind == "warn":
        print(f"{C.YELLOW}{prefix} ⚠ {message}{C.RESET}")
    elif kind == "progress":
        print(f"{C.CYAN}{prefix} → {message}{C.RESET}")
    elif kind == "debug":
        if DEBUG:
            print(f"{C.DIM}{prefix} [DEBUG] {message}{C.RESET}")
    else:
        print(f"{prefix}   {message}")


class LoadingAnimation:
    """ASCII loading animation for terminal using a background thread"""

    FRAMES = [
        "▰▱▱▱▱▱▱",
        "▰▰▱▱▱▱▱",
        "▰▰▰▱▱▱▱",
        "▰▰▰▰▱▱▱",
        "▰▰▰▰▰▱▱",
        "▰▰▰▰▰▰▱",
        "▰▰▰▰▰▰▰",
        "▱▰▰▰▰▰▰",
        "▱▱▰▰▰▰▰",
        "▱▱▱▰▰▰▰",
        "▱▱▱▱▰▰▰",
        "▱▱▱▱▱▰▰",
        "▱▱▱▱▱▱▰",
        "▱▱▱▱▱▱▱",
    ]

    def __init__(self, message: str = "Loading"):
        self.message = message
        self.running = False
        self.thread = None

    def _animate_sync(self):
        C = Colors
        frame_idx = 0
        while self.running:
            frame = self.FRAMES[frame_idx % len(self.FRAMES)]
            sys.stdout.write(f"\r{C.YELLOW}{frame}{C.RESET} {self.message}...")
            sys.stdout.flush()
            frame_idx += 1
            time.sleep(0.1)

    async def start(self):
        if sys.stdout.isatty():
            self.running = True
            self.thread = threading.Thread(target=self._animate_sync, daemon=True)
            self.thread.start()

    async def stop(self, success: bool = True):
        C = Colors
        self.running = False
        if self.thread:
            self.thread.join(timeout=0.5)

        if sys.stdout.isatty():
            sys.stdout.write("\r" + " " * 60 + "\r")
            if success:
                sys.stdout.write(f"{C.GREEN}✓{C.RESET} {self.message} {C.GREEN}done{C.RESET}\n")
            else:
                sys.stdout.write(f"{C.RED}✗{C.RESET} {self.message} {C.RED}failed{C.RESET}\n")
            sys.stdout.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="awsshare",
        description="Fetch full EC2 and Lightsail instance details from the AWS Console",
    )
    parser.add_argument("-s", "--service", choices=["ec2", "lightsail", "all"], default="all",
                        help="Service to fetch (default: all)")
    parser.add_argument("-r", "--region", default="", help="AWS region (e.g., us-east-1)")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT,
                        help="Output file path (JSON or CSV based on extension)")
    parser.add_argument("-t", "--timeout", type=int, default=300, help="Login timeout in seconds")
    parser.add_argument("--headless", action="store_true",
                        help="Run in headless mode (not recommended for login)")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode with verbose logging")
    parser.add_argument("--watch", action="store_true",
                        help="Keep a share button on instance pages and open the composer on click")
    parser.add_argument("--composer", help=f"Mail composer to save ({', '.join(COMPOSERS)})")
    return parser


def configure_logging(debug: bool):
    global DEBUG
    DEBUG = debug
    if debug:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        pkg_logger = logging.getLogger("awsshare")
        pkg_logger.setLevel(logging.DEBUG)
        pkg_logger.addHandler(handler)


def ec2_list_url(region: str) -> str:
    if region:
        return f"https://{region}.console.aws.amazon.com/ec2/home?region={region}#Instances:"
    return "https://console.aws.amazon.com/ec2/home#Instances:"


def ec2_detail_url(region: str, instance_id: str) -> str:
    return f"https://{region}.console.aws.amazon.com/ec2/home?region={region}#InstanceDetails:instanceId={instance_id}"


def lightsail_list_url(region: str) -> str:
    if region:
        return f"{LIGHTSAIL_URL}/{region}/instances"
    return f"{LIGHTSAIL_URL}/home/instances"


def lightsail_detail_url(region: str, name: str) -> str:
    return f"{LIGHTSAIL_URL}/{region}/instances/{quote(name, safe='')}/connect"


async def detail_region(browser: ConsoleBrowser, region: str) -> str:
    if region:
        return region
    return account.region_from_url(await browser.current_url()) or account.DEFAULT_REGION


async def fetch_instances(browser: ConsoleBrowser, service: str, region: str, settle: Settle) -> List[Dict[str, Any]]:
    """Scrape every instance of one service, one at a time, in list order."""
    label = "EC2" if service == "ec2" else "Lightsail"
    log(f"Navigating to {label} Console...", "progress")
    await browser.goto(ec2_list_url(region) if service == "ec2" else lightsail_list_url(region))

    log(f"Extracting {label} instance list...", "progress")
    snapshot = await browser.snapshot()
    if service == "ec2":
        identifiers = ec2.list_instance_ids(snapshot.document)
    else:
        identifiers = lightsail.list_instance_names(snapshot.document)
    if not identifiers:
        log("No instances found or table not loaded", "warn")
        return []
    log(f"Found {len(identifiers)} {label} instances", "success")

    target_region = await detail_region(browser, region)
    instances = []
    for i, identifier in enumerate(identifiers, 1):
        log(f"Extracting details for {identifier} ({i}/{len(identifiers)})...", "progress")
        try:
            if service == "ec2":
                page = await browser.goto(ec2_detail_url(target_region, identifier))
            else:
                page = await browser.goto(lightsail_detail_url(target_region, identifier))
            record = await scrape_instance(page, service, settle)
            instances.append(record)
            log(f"Extracted {identifier}", "success")
        except Exception as e:
            log(f"Failed to extract {identifier}: {e}", "error")
            if DEBUG:
                traceback.print_exc()
            instances.append({"instance_id": identifier, "service": service, "error": str(e)})
    return instances


def print_banner(args):
    C = Colors
    print(f"\n{C.BOLD}{C.CYAN}🚀 AWS Instance Share CLI{C.RESET}\n")
    print(f"{C.DIM}{'─' * 50}{C.RESET}")
    print(f"Service: {args.service}")
    print(f"Region: {args.region or 'default'}")
    print(f"Output: {args.output}")
    print(f"Headless: {str(args.headless).lower()}")
    print(f"{C.DIM}{'─' * 50}{C.RESET}\n")


def print_summary(results: Dict[str, Any]):
    C = Colors
    print(f"\n{C.BOLD}{C.CYAN}📊 Summary{C.RESET}")
    print(f"{C.DIM}{'─' * 50}{C.RESET}")
    print(f"EC2 Instances: {len(results['ec2'])}")
    print(f"Lightsail Instances: {len(results['lightsail'])}")
    print(f"Total: {len(results['ec2']) + len(results['lightsail'])}")
    print(f"{C.DIM}{'─' * 50}{C.RESET}\n")


async def wait_for_login(browser: ConsoleBrowser, timeout: int):
    log("Waiting for you to log in to AWS Console...", "progress")
    log(f"Timeout: {timeout} seconds", "info")
    await browser.wait_for_login(timeout, notify=lambda message: log(message, "info"))
    log("Login detected!", "success")


async def watch(browser: ConsoleBrowser, settings: Settings):
    controller = ShareController(browser.page, settings)
    log(f"Watching for share requests (composer: {settings.composer}). Press Ctrl-C to stop.", "progress")

    def on_result(result):
        if result.compose and result.compose.copied:
            log("Body copied to clipboard; composer opened with subject only", "success")
        elif result.compose and result.compose.clipboard_failed:
            log("URL too long and clipboard copy failed", "warn")
        else:
            log(f"Composer opened for {result.record.instance_id}", "success")

    await controller.watch(on_result=on_result, on_error=lambda e: log(f"Share failed: {e}", "error"))


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    settings = Settings.load()
    if args.composer:
        path = save_composer(args.composer)
        settings.composer = args.composer.strip().lower()
        log(f"Composer set to {settings.composer} ({path})", "success")

    print_banner(args)
    browser = ConsoleBrowser(settings, headless=args.headless or settings.headless)

    try:
        loader = LoadingAnimation("Starting browser")
        await loader.start()
        try:
            await browser.start()
        except Exception:
            await loader.stop(success=False)
            raise
        await loader.stop(success=True)

        log("Opening AWS Console...", "progress")
        await browser.goto(AWS_CONSOLE_URL)
        await wait_for_login(browser, args.timeout)

        if args.watch:
            await watch(browser, settings)
            return 0

        settle = settle_from(settings)
        ec2_records, lightsail_records = [], []
        if args.service in ("ec2", "all"):
            ec2_records = await fetch_instances(browser, "ec2", args.region, settle)
        if args.service in ("lightsail", "all"):
            lightsail_records = await fetch_instances(browser, "lightsail", args.region, settle)

        results = export.build_results(ec2_records, lightsail_records, region=args.region)
        output = export.write_results(Path(args.output).resolve(), results)
        log(f"Results saved to {output}", "success")
        print_summary(results)
        return 0

    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\n")
        log("Interrupted", "warn")
        return 0 if args.watch else 1
    except Exception as e:
        log(f"Error: {e}", "error")
        if args.debug:
            traceback.print_exc()
        return 1
    finally:
        await browser.close()
        log("Browser closed", "info")


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
