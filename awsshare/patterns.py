"""
Regex scanners for identifiers and IP literals in console page text.

Used for data the console does not expose behind a labelled field.
All scans return de-duplicated matches in first-seen order.
"""
import re
from typing import Dict, Iterable, List, Optional

INSTANCE_ID = re.compile(r"\bi-[a-f0-9]{8,17}\b")
SECURITY_GROUP_ID = re.compile(r"\bsg-[a-f0-9]+\b")
VOLUME_ID = re.compile(r"\bvol-[a-f0-9]+\b")
ENI_ID = re.compile(r"\beni-[a-f0-9]+\b")
VPC_ID = re.compile(r"\bvpc-[a-f0-9]+\b")
SUBNET_ID = re.compile(r"\bsubnet-[a-f0-9]+\b")
EIP_ALLOCATION_ID = re.compile(r"\beipalloc-[a-f0-9]+\b")
AMI_ID = re.compile(r"\bami-[a-f0-9]+\b")

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
IPV4 = re.compile(rf"\b{_OCTET}\.{_OCTET}\.{_OCTET}\.{_OCTET}\b")

_HEXTET = r"[0-9a-f]{1,4}"
IPV6_PATTERNS = (
    # full form
    re.compile(rf"(?<![0-9a-f:])(?:{_HEXTET}:){{7}}{_HEXTET}\b", re.I),
    # compressed, with a leading group
    re.compile(rf"(?<![0-9a-f:])(?:{_HEXTET}:){{1,7}}:(?:{_HEXTET}:){{0,6}}{_HEXTET}\b", re.I),
    # leading double colon
    re.compile(rf"(?<![0-9a-f:])::(?:{_HEXTET}:){{0,6}}{_HEXTET}\b", re.I),
)

PRIVATE_IPV4_PREFIXES = ("10.", "172.", "192.168.")
RESERVED_IPV4_PREFIXES = ("127.", "169.254.", "0.")
PRIVATE_IPV6_PREFIXES = ("fe80:", "fc00:", "fd00:")
SKIPPED_IPV6 = ("::1", "::")

# Ubuntu release codenames seen in AMI names
UBUNTU_CODENAMES = {
    "noble": "24.04",
    "jammy": "22.04",
    "focal": "20.04",
    "bionic": "18.04",
}

# (substring, login user), checked in order
SSH_USERS = (
    ("ubuntu", "ubuntu"),
    ("amazon", "ec2-user"),
    ("centos", "centos"),
    ("debian", "admin"),
    ("bitnami", "bitnami"),
    ("linux", "ec2-user"),
)


def unique(items: Iterable[str]) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def find_ids(pattern: "re.Pattern", text: str) -> List[str]:
    return unique(pattern.findall(text or ""))


def first_id(pattern: "re.Pattern", text: str) -> Optional[str]:
    match = pattern.search(text or "")
    return match.group(0) if match else None


def classify_ipv4(ip: str) -> Optional[str]:
    """'private', 'public', or None for loopback/link-local/zero-net."""
    if ip.startswith(PRIVATE_IPV4_PREFIXES):
        return "private"
    if ip.startswith(RESERVED_IPV4_PREFIXES):
        return None
    return "public"


def classify_ipv6(ip: str) -> Optional[str]:
    """'private', 'public', or None for ::1 and ::."""
    ip = ip.lower()
    if ip in SKIPPED_IPV6:
        return None
    if ip.startswith(PRIVATE_IPV6_PREFIXES):
        return "private"
    return "public"


def find_ipv4(text: str) -> List[str]:
    return unique(m.group(0) for m in IPV4.finditer(text or ""))


def find_ipv6(text: str) -> List[str]:
    found = []
    for pattern in IPV6_PATTERNS:
        found.extend(m.group(0) for m in pattern.finditer(text or ""))
    return [ip for ip in unique(found) if classify_ipv6(ip)]


def scan_ipv4(text: str) -> Dict[str, List[str]]:
    """All IPv4 literals in the text, split into private and public."""
    result = {"private": [], "public": []}
    for ip in find_ipv4(text):
        kind = classify_ipv4(ip)
        if kind:
            result[kind].append(ip)
    return result


def extract_ips(text: str) -> Dict[str, Optional[str]]:
    """First public/private IPv4 and IPv6 address found in the text."""
    ips = {
        "public_ipv4": None,
        "private_ipv4": None,
        "public_ipv6": None,
        "private_ipv6": None,
    }
    for ip in find_ipv4(text):
        kind = classify_ipv4(ip)
        if kind and not ips[f"{kind}_ipv4"]:
            ips[f"{kind}_ipv4"] = ip
    for ip in find_ipv6(text):
        kind = classify_ipv6(ip)
        if kind and not ips[f"{kind}_ipv6"]:
            ips[f"{kind}_ipv6"] = ip
    return ips


def guess_ssh_user(os_name: Optional[str], default: str = "ec2-user") -> str:
    """Best-guess login user from an OS or blueprint name."""
    lowered = (os_name or "").lower()
    for needle, user in SSH_USERS:
        if needle in lowered:
            return user
    return default
