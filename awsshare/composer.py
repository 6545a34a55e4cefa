"""
Composer dispatch: hand the subject and body to the configured mail client.

Webmail composers get a compose URL with the subject and body as query
parameters; desktop clients and unknown keys get a mailto: URI. A URL
over MAX_URL_LENGTH is never opened as is: the full body goes to the
clipboard and the composer opens with the subject only.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from awsshare.config import DEFAULT_COMPOSER
from awsshare.tabs import evaluate_result, js_call

logger = logging.getLogger(__name__)

# Longest compose URL handed to the browser; longer ones get 400s
MAX_URL_LENGTH = 7500

TEMPLATES = {
    "gmail": "https://mail.google.com/mail/?view=cm&su={subject}&body={body}",
    "outlook": "https://outlook.live.com/mail/0/deeplink/compose?subject={subject}&body={body}",
    "yahoo": "https://compose.mail.yahoo.com/?subject={subject}&body={body}",
    "protonmail": "https://mail.proton.me/compose?subject={subject}&body={body}",
    "aol": "https://mail.aol.com/webmail-std/en-us/suite#compose?subject={subject}&body={body}",
    "icloud": "https://www.icloud.com/mail/#compose?subject={subject}&body={body}",
}
MAILTO_TEMPLATE = "mailto:?subject={subject}&body={body}"

# Desktop clients open through the system mailto: handler
DESKTOP_CLIENTS = ("thunderbird", "outlook-office", "apple-mail", "evolution", "kmail", "mailto")

COMPOSERS = tuple(TEMPLATES) + DESKTOP_CLIENTS

CLIPBOARD_NOTICE = "📋 Instance details copied to clipboard! Paste into your email."
CLIPBOARD_FAILED_NOTICE = "⚠️ URL too long. Please try copying manually."


def encode(value: str) -> str:
    """URL-encode like JavaScript's encodeURIComponent."""
    return quote(value, safe="-_.!~*'()")


def compose_url(composer: Optional[str], subject: str, body: str) -> str:
    template = TEMPLATES.get((composer or DEFAULT_COMPOSER).lower(), MAILTO_TEMPLATE)
    return template.format(subject=encode(subject), body=encode(body))


def mailto_subject_url(subject: str) -> str:
    return f"mailto:?subject={encode(subject)}"


@dataclass
class ComposePlan:
    """What to open, and what (if anything) goes on the clipboard first."""
    url: str
    clipboard_text: Optional[str] = None

    @property
    def uses_clipboard(self) -> bool:
        return self.clipboard_text is not None


def plan_compose(composer: Optional[str], subject: str, body: str, full_body: Optional[str] = None) -> ComposePlan:
    """Pick the direct URL, or the clipboard fallback when it is too long.

    The fallback URL keeps everything before the body parameter and is
    never longer than MAX_URL_LENGTH.
    """
    url = compose_url(composer, subject, body)
    if len(url) <= MAX_URL_LENGTH:
        return ComposePlan(url=url)

    short_url = url.split("&body=")[0] or mailto_subject_url(subject)
    if len(short_url) > MAX_URL_LENGTH:
        short_url = short_url.split("?")[0]
    return ComposePlan(url=short_url, clipboard_text=full_body or body)


@dataclass
class ComposeResult:
    url: str
    copied: bool = False
    clipboard_failed: bool = False
    fallback: bool = False


# --- page actions -----------------------------------------------------------

COPY_JS = """(text) => {
    const fallback = () => {
        const area = document.createElement('textarea');
        area.value = text;
        area.style.position = 'fixed';
        area.style.left = '-999999px';
        area.style.top = '-999999px';
        document.body.appendChild(area);
        area.focus();
        area.select();
        let ok = false;
        try { ok = document.execCommand('copy'); } catch (e) { ok = false; }
        document.body.removeChild(area);
        return ok ? 'yes' : 'no';
    };
    if (navigator.clipboard && navigator.clipboard.writeText) {
        return navigator.clipboard.writeText(text).then(() => 'yes', fallback);
    }
    return fallback();
}"""

NOTIFY_JS = """(message, duration) => {
    const note = document.createElement('div');
    note.className = 'aws-share-notification';
    note.style.cssText = 'position:fixed;top:20px;right:20px;'
        + 'background:linear-gradient(135deg,#28a745,#20c997);color:white;'
        + 'padding:14px 20px;border-radius:8px;box-shadow:0 4px 12px rgba(0,0,0,0.2);'
        + 'z-index:10000;font-family:-apple-system,BlinkMacSystemFont,sans-serif;'
        + 'font-size:14px;font-weight:600;';
    note.textContent = message;
    document.body.appendChild(note);
    setTimeout(() => { if (note.parentNode) note.parentNode.removeChild(note); }, duration);
    return 'ok';
}"""

OPEN_JS = """(url) => {
    const win = window.open(url, '_blank');
    return win ? 'opened' : 'blocked';
}"""


async def copy_to_clipboard(page, text: str) -> bool:
    try:
        result = await page.evaluate(js_call(COPY_JS, text))
    except Exception as e:
        logger.debug("Clipboard write failed: %s", e)
        return False
    return evaluate_result(result) == "yes"


async def notify(page, message: str, duration: int = 3000):
    """Show a transient toast on the page. Best effort."""
    try:
        await page.evaluate(js_call(NOTIFY_JS, message, duration))
    except Exception as e:
        logger.debug("Notification failed: %s", e)


async def open_url(page, url: str) -> bool:
    result = await page.evaluate(js_call(OPEN_JS, url))
    return evaluate_result(result) == "opened"


async def open_composer(
    page,
    subject: str,
    body: str,
    full_body: Optional[str] = None,
    composer: str = DEFAULT_COMPOSER,
) -> ComposeResult:
    """Open the composer from the page, falling back as needed.

    `body` is the compact variant used in the URL; `full_body` is what goes
    to the clipboard when the URL would be too long.
    """
    plan = plan_compose(composer, subject, body, full_body)
    result = ComposeResult(url=plan.url)

    if plan.uses_clipboard:
        if await copy_to_clipboard(page, plan.clipboard_text):
            result.copied = True
            await notify(page, CLIPBOARD_NOTICE, 4000)
        else:
            result.clipboard_failed = True
            await notify(page, CLIPBOARD_FAILED_NOTICE, 4000)
            return result

    try:
        opened = await open_url(page, plan.url)
    except Exception as e:
        logger.debug("Failed to open composer: %s", e)
        opened = False

    if not opened:
        result.url = mailto_subject_url(subject)
        result.fallback = True
        try:
            await open_url(page, result.url)
        except Exception as e:
            logger.debug("mailto fallback failed: %s", e)
    return result
