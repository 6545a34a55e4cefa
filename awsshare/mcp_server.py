"""
MCP Server for AWS Instance Share

Exposes the share flow as MCP tools: open the console, extract the
instance on screen, render the email body, hand it to the composer, and
answer the share-button host actions.

Run: awsshare-mcp
"""
import asyncio
import json
import os
import logging
from typing import Any

# CRITICAL: MCP servers communicate via JSON on stdout
# Any other output (logs, prints) breaks the protocol
# Suppress ALL logging before importing anything else
os.environ["BROWSER_USE_LOGGING_LEVEL"] = "CRITICAL"
logging.disable(logging.CRITICAL)

# Suppress specific loggers that might still output
for logger_name in ['browser_use', 'cdp_use', 'playwright', 'asyncio', 'urllib3', 'httpx']:
    logging.getLogger(logger_name).disabled = True
    logging.getLogger(logger_name).setLevel(logging.CRITICAL)

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from awsshare import messaging
from awsshare.browser import ConsoleBrowser
from awsshare.composer import COMPOSERS
from awsshare.config import Settings, save_composer
from awsshare.formatter import build_subject
from awsshare.share import ShareController

CONSOLE_URL = "https://console.aws.amazon.com/"

# Global browser instance
browser: ConsoleBrowser | None = None
controller: ShareController | None = None


async def get_browser() -> ConsoleBrowser:
    """Get or create browser instance"""
    global browser, controller
    if browser is None:
        settings = Settings.load()
        browser = ConsoleBrowser(settings)
        await browser.start()
        controller = ShareController(browser.page, settings)
    return browser


def text(value: str) -> list[TextContent]:
    return [TextContent(type="text", text=value)]


# Create MCP server
app = Server("awsshare")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools"""
    return [
        Tool(
            name="console_open",
            description="Open the AWS Console (or a given console URL) in the browser. Log in there before using the other tools.",
            inputSchema={
                "type": "object",
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "Console URL to open (default: https://console.aws.amazon.com/)"
                    }
                }
            }
        ),
        Tool(
            name="share_instance",
            description="Extract the EC2 or Lightsail instance shown in the browser and open the configured mail composer with its details.",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="instance_details",
            description="Extract the EC2 or Lightsail instance shown in the browser and return the merged record as JSON.",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="email_body",
            description="Extract the instance shown in the browser and return the subject and email body as plain text.",
            inputSchema={
                "type": "object",
                "properties": {
                    "compact": {
                        "type": "boolean",
                        "description": "Use the short separator (the variant sent in composer URLs)",
                        "default": False
                    }
                }
            }
        ),
        Tool(
            name="highlight_buttons",
            description="Pulse the share buttons on the current page for 6 seconds and return how many there are.",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="get_button_count",
            description="Return the number of share buttons on the current page.",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="set_composer",
            description="Choose the mail composer used by share_instance. Unknown values fall back to mailto:.",
            inputSchema={
                "type": "object",
                "properties": {
                    "composer": {
                        "type": "string",
                        "description": f"Composer key: {', '.join(COMPOSERS)}"
                    }
                },
                "required": ["composer"]
            }
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls"""
    try:
        if name == "set_composer":
            composer = arguments["composer"]
            path = save_composer(composer)
            if controller is not None:
                controller.settings.composer = composer.strip().lower()
            return text(f"Composer set to {composer.strip().lower()} ({path})")

        b = await get_browser()

        if name == "console_open":
            url = arguments.get("url") or CONSOLE_URL
            await b.goto(url)
            return text(f"Opened {await b.current_url()}")

        elif name == "share_instance":
            result = await controller.share()
            lines = [f"Subject: {result.subject}", f"Composer URL: {result.compose.url}"]
            if result.compose.copied:
                lines.append("Body was too long for the URL and was copied to the clipboard.")
            if result.compose.clipboard_failed:
                lines.append("Body was too long for the URL and the clipboard copy failed.")
            if result.compose.fallback:
                lines.append("Composer could not be opened; fell back to mailto:.")
            return text("\n".join(lines))

        elif name == "instance_details":
            record = await controller.details()
            return text(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))

        elif name == "email_body":
            record = await controller.details()
            _, compact_body, full_body = await controller.bodies(record)
            body = compact_body if arguments.get("compact") else full_body
            return text(f"Subject: {build_subject(record)}\n{body}")

        elif name == "highlight_buttons":
            page = await b.page()
            return text(json.dumps(await messaging.handle_message(page, {"action": "highlight-buttons"})))

        elif name == "get_button_count":
            page = await b.page()
            return text(json.dumps(await messaging.handle_message(page, {"action": "get-button-count"})))

        else:
            return text(f"Unknown tool: {name}")

    except Exception as e:
        return text(f"Error: {str(e)}")


async def main():
    """Run the MCP server"""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
