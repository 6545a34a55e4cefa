"""
Share controls on the console page and the host messaging actions.

The share control is a floating button injected into the page. Clicking
it only raises a page-side flag (``window.__awsShareRequested``); the
watch loop polls and consumes that flag, so no callback crosses from the
page into Python.
"""
import logging
from typing import Any, Dict

from awsshare.tabs import evaluate_result, js_call

logger = logging.getLogger(__name__)

BUTTON_CLASS = "aws-share-button-v1"
HIGHLIGHT_MS = 6000
TOAST_MS = 4000

ACTIONS = ("highlight-buttons", "get-button-count")

INJECT_JS = """(cls, service, identifier) => {
    const existing = document.querySelector('.' + cls);
    if (existing && existing.dataset.identifier === identifier) return 'present';
    if (existing) existing.remove();
    const btn = document.createElement('button');
    btn.className = cls;
    btn.dataset.service = service;
    btn.dataset.identifier = identifier;
    btn.title = 'Share AWS instance details via email';
    btn.textContent = '✉️ Share';
    btn.style.cssText = 'position:fixed;bottom:24px;right:24px;z-index:9999;'
        + 'padding:10px 16px;border-radius:20px;border:none;cursor:pointer;'
        + 'background:#ff9900;color:#16191f;font-weight:600;'
        + 'box-shadow:0 2px 8px rgba(0,0,0,0.25);';
    btn.addEventListener('click', () => {
        if (btn.disabled) return;
        window.__awsShareRequested = true;
    });
    document.body.appendChild(btn);
    return 'injected';
}"""

BUSY_JS = """(cls, busy) => {
    const buttons = document.querySelectorAll('.' + cls);
    buttons.forEach((btn) => {
        btn.disabled = busy;
        btn.textContent = busy ? '⏳ Extracting...' : '✉️ Share';
        btn.style.opacity = busy ? '0.6' : '1';
    });
    return String(buttons.length);
}"""

TAKE_REQUEST_JS = """() => {
    const requested = window.__awsShareRequested === true;
    window.__awsShareRequested = false;
    return requested ? 'yes' : 'no';
}"""

COUNT_JS = """(cls) => String(document.querySelectorAll('.' + cls).length)"""

HIGHLIGHT_JS = """(cls, highlightMs, toastMs) => {
    const buttons = document.querySelectorAll('.' + cls);
    buttons.forEach((btn) => {
        btn.style.animation = 'pulse 2s infinite';
        btn.style.border = '2px solid #FFD700';
    });
    if (!document.getElementById('pulse-animation')) {
        const style = document.createElement('style');
        style.id = 'pulse-animation';
        style.textContent = '@keyframes pulse { 0% { transform: scale(1); } '
            + '50% { transform: scale(1.05); } 100% { transform: scale(1); } }';
        document.head.appendChild(style);
    }
    setTimeout(() => {
        buttons.forEach((btn) => {
            btn.style.animation = '';
            btn.style.border = '';
        });
    }, highlightMs);
    if (buttons.length > 0) {
        const note = document.createElement('div');
        note.style.cssText = 'position:fixed;top:20px;right:20px;'
            + 'background:linear-gradient(135deg,#FF9500,#FF6B35);color:white;'
            + 'padding:12px 20px;border-radius:8px;box-shadow:0 4px 12px rgba(0,0,0,0.2);'
            + 'z-index:10000;font-size:14px;font-weight:600;';
        note.textContent = '🎯 Found ' + buttons.length + ' AWS instance'
            + (buttons.length !== 1 ? 's' : '') + ' with share buttons';
        document.body.appendChild(note);
        setTimeout(() => { if (note.parentNode) note.parentNode.removeChild(note); }, toastMs);
    }
    return String(buttons.length);
}"""


def _count(raw) -> int:
    try:
        return int(evaluate_result(raw))
    except ValueError:
        return 0


async def inject_share_button(page, service: str, identifier: str) -> bool:
    """Render the share control for this instance. True if newly injected."""
    raw = await page.evaluate(js_call(INJECT_JS, BUTTON_CLASS, service, identifier))
    return evaluate_result(raw) == "injected"


async def set_share_button_busy(page, busy: bool):
    await page.evaluate(js_call(BUSY_JS, BUTTON_CLASS, busy))


async def take_share_request(page) -> bool:
    """True if the share control was clicked since the last call."""
    return evaluate_result(await page.evaluate(TAKE_REQUEST_JS)) == "yes"


async def get_button_count(page) -> int:
    return _count(await page.evaluate(js_call(COUNT_JS, BUTTON_CLASS)))


async def highlight_buttons(page) -> int:
    """Pulse every share control for six seconds; returns how many there are."""
    return _count(await page.evaluate(js_call(HIGHLIGHT_JS, BUTTON_CLASS, HIGHLIGHT_MS, TOAST_MS)))


async def handle_message(page, message: Dict[str, Any]) -> Dict[str, Any]:
    """Answer a host request: {"action": "highlight-buttons" | "get-button-count"}."""
    action = (message or {}).get("action")
    if action == "highlight-buttons":
        return {"count": await highlight_buttons(page)}
    if action == "get-button-count":
        return {"count": await get_button_count(page)}
    logger.debug("Unknown host action %r", action)
    return {"error": f"unknown action: {action}"}
