"""Account and region details from the console chrome."""
import json
import re
from typing import Dict, Optional
from urllib.parse import unquote

from awsshare.dom import text_of

ACCOUNT_ID = re.compile(r"\b(\d{12})\b")
_REGION = r"[a-z]{2}(?:-[a-z]+)+-\d"
REGION_PARAM = re.compile(r"[?&#]region=([a-z0-9-]+)")
LIGHTSAIL_REGION_PATH = re.compile(rf"/ls/webapp/({_REGION})(?:/|$)")
REGION_PATH = re.compile(rf"/({_REGION})/")
REGION_SUBDOMAIN = re.compile(rf"https?://({_REGION})\.console\.aws\.amazon\.com")

DEFAULT_REGION = "us-east-1"


def extract_account_info(doc) -> Dict[str, str]:
    """Account id, display name and region from the session meta tag.

    Falls back to scanning the account menu for a 12-digit id when the
    meta tag is missing or unreadable.
    """
    info = {}
    if doc is None:
        return info

    meta = doc.select_one('meta[name="awsc-session-data"]')
    session = None
    if meta is not None and meta.get("content"):
        try:
            session = json.loads(meta["content"])
        except ValueError:
            session = None

    if isinstance(session, dict):
        if session.get("accountId"):
            info["id"] = str(session["accountId"])
        if session.get("displayName"):
            info["name"] = unquote(str(session["displayName"]))
        if session.get("infrastructureRegion"):
            info["region"] = str(session["infrastructureRegion"])
        return info

    for selector in ("#awsc-username-menu", '[data-testid="aws-account-id"]'):
        match = ACCOUNT_ID.search(text_of(doc.select_one(selector)))
        if match:
            info["id"] = match.group(1)
    return info


def region_from_url(url: str) -> Optional[str]:
    for pattern in (REGION_PARAM, LIGHTSAIL_REGION_PATH, REGION_SUBDOMAIN, REGION_PATH):
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


def extract_region(doc, url: str = "") -> str:
    """Session region first, then whatever the URL says. Empty if unknown."""
    info = extract_account_info(doc)
    return info.get("region") or region_from_url(url) or ""
