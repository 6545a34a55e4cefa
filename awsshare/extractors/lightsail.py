"""
Lightsail instance tabs: Connect, Storage, Networking, Domains, Tags.

Lightsail pages carry no labelled-field grid like EC2; most values sit
behind data-testid hooks or inside free text, so this module leans on
selectors first and regexes over the page text second.
"""
import copy
import re
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urljoin

from awsshare import patterns
from awsshare.dom import NA, clean, page_text, present, search, select_text, text_of
from awsshare.tables import body_rows, cell_texts, is_placeholder_row

INSTANCE_NAME = re.compile(r"/instances/([^/?#]+)")

STATE_PATTERN = re.compile(r"\b(running|stopped|pending|stopping|starting|rebooting)\b", re.I)
BLUEPRINT_PATTERN = re.compile(
    r"\b(Ubuntu|Debian|Amazon Linux|CentOS|Windows Server|WordPress|LAMP|Node\.js|Django|Plesk|cPanel"
    r"|Magento|Joomla|Drupal|GitLab|Redmine|Nginx|MEAN)\b(?:[ \t]+(\d+(?:\.\d+)*(?:[ \t]+LTS)?))?"
)
VERSION = re.compile(r"(\d+(?:\.\d+)*)")
RAM = re.compile(r"(\d+(?:\.\d+)?)\s*GB\s*RAM", re.I)
VCPUS = re.compile(r"(\d+)\s*vCPUs?", re.I)
SSD = re.compile(r"(\d+)\s*GB\s*SSD", re.I)
TRANSFER = re.compile(r"(\d+(?:\.\d+)?)\s*TB\s*Transfer", re.I)
MONTHLY_PRICE = re.compile(r"\$(\d+(?:\.\d+)?)\s*(?:/\s*(?:mo|month)|USD)", re.I)
SSH_KEY = re.compile(r"(?:SSH key|Key pair)[:\s]+([A-Za-z0-9._-]+)", re.I)
SSH_USER_PATTERNS = (
    re.compile(r"SSH\s+using\s+user\s+name[:\s]+([a-z_][a-z0-9_-]*)", re.I),
    re.compile(r"Username[:\s]+([a-z_][a-z0-9_-]*)", re.I),
)
AZ = re.compile(r"\b([a-z]{2}-[a-z]+-\d[a-z])\b")
SUPPORT_CODE = re.compile(r"Support\s*code[:\s]+([a-zA-Z0-9\-/]+)", re.I)
CREATED = re.compile(r"Created[:\s]+([A-Za-z]+\s+\d+,?\s+\d{4}|\d{4}-\d{2}-\d{2})", re.I)
STATIC_IP_NAME = re.compile(r"Static IP[:\s]+([a-zA-Z0-9_-]+)", re.I)
SIZE_NUMBER = re.compile(r"(\d+)")
PORT_TEXT = re.compile(r"^[\d\-,\s]+$")
PORT_IN_TEXT = re.compile(r"\b(\d+(?:-\d+)?(?:,\s*\d+(?:-\d+)?)*)\b")

CONNECT_FIELDS: Dict[str, Any] = {
    "instance_name": NA,
    "name": NA,
    "state": NA,
    "availability_zone": NA,
    "blueprint": NA,
    "blueprint_id": NA,
    "os": NA,
    "os_version": NA,
    "bundle": NA,
    "bundle_id": NA,
    "ram": NA,
    "vcpus": NA,
    "storage": NA,
    "transfer_allowance": NA,
    "monthly_price": NA,
    "instance_type": NA,
    "networking_type": NA,
    "ssh_key_name": NA,
    "ssh_user": NA,
    "connect_url": NA,
    "public_ipv4": NA,
    "private_ipv4": NA,
    "public_ipv6": NA,
    "private_ipv6": NA,
    "is_static_ip": False,
    "support_code": NA,
    "created_at": NA,
}

STORAGE_FIELDS: Dict[str, Any] = {
    "system_disk_size": NA,
    "system_disk_path": NA,
    "system_disk_name": NA,
    "system_disk_type": NA,
    "additional_disks": [],
    "snapshots": [],
    "automatic_snapshots": NA,
    "total_storage_gib": 0,
}

NETWORKING_FIELDS: Dict[str, Any] = {
    "public_ipv4": NA,
    "private_ipv4": NA,
    "is_static_ip": False,
    "static_ip_name": NA,
    "ipv6_enabled": False,
    "ipv6_addresses": [],
    "public_ipv6": NA,
    "ipv4_firewall_rules": [],
    "ipv6_firewall_rules": [],
    "load_balancers": [],
    "load_balancing_status": NA,
    "distributions": [],
    "distribution_status": NA,
}

DOMAINS_FIELDS: Dict[str, Any] = {
    "domains": [],
    "certificates": [],
    "dns_zones": [],
    "domains_status": NA,
}

TAGS_FIELDS: Dict[str, Any] = {
    "tags": {},
    "key_only_tags": [],
    "tag_count": 0,
}

TAB_FIELDS = {
    "connect": CONNECT_FIELDS,
    "storage": STORAGE_FIELDS,
    "networking": NETWORKING_FIELDS,
    "domains": DOMAINS_FIELDS,
    "tags": TAGS_FIELDS,
}


def _defaults(fields: Dict[str, Any]) -> Dict[str, Any]:
    return copy.deepcopy(fields)


def _set(data: Dict[str, Any], key: str, value: Optional[str]):
    value = present(value)
    if value:
        data[key] = value


def instance_name_from_url(url: str) -> Optional[str]:
    match = INSTANCE_NAME.search(url or "")
    return present(unquote(match.group(1))) if match else None


def _labelled_container(doc, test_id: str):
    label = doc.select_one(f'[data-testid="{test_id}"]')
    if label is None:
        return None
    parent = label.parent
    return parent.parent if parent is not None and parent.parent is not None else parent


def _container_copy_value(container) -> Optional[str]:
    if container is None:
        return None
    return select_text(container, '[class*="text-to-copy"]')


def extract_connect(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(CONNECT_FIELDS)
    if doc is None:
        return data
    text = page_text(doc)

    name = instance_name_from_url(url)
    _set(data, "instance_name", name)
    _set(data, "name", name)

    state = select_text(
        doc,
        '[data-testid^="ls.instanceStatus."]',
        '[aria-live="polite"] [data-testid*="instanceStatus"]',
        '[data-testid*="instanceStatus"]',
    )
    _set(data, "state", state or search(STATE_PATTERN, text))

    blueprint = select_text(doc, '[data-testid*="blueprintName"]', '[data-testid*="blueprint"]')
    if not blueprint:
        match = BLUEPRINT_PATTERN.search(text)
        blueprint = clean(match.group(0)) if match else None
    if blueprint:
        _set(data, "blueprint", blueprint)
        _set(data, "os", blueprint)
        _set(data, "os_version", search(VERSION, blueprint))
    _set(data, "blueprint_id", select_text(doc, '[data-testid*="blueprintId"]'))

    bundle = select_text(doc, '[data-testid="ls.bundleDetailsDisplay.messageFormat"]', '[data-testid*="bundleDetails"]')
    if bundle:
        data["bundle"] = bundle
        ram = search(RAM, bundle)
        if ram:
            data["ram"] = f"{ram} GB"
        _set(data, "vcpus", search(VCPUS, bundle))
        ssd = search(SSD, bundle)
        if ssd:
            data["storage"] = f"{ssd} GB SSD"
        transfer = search(TRANSFER, bundle)
        if transfer:
            data["transfer_allowance"] = f"{transfer} TB"
    _set(data, "bundle_id", select_text(doc, '[data-testid*="bundleId"]'))

    price = search(MONTHLY_PRICE, bundle or "") or search(MONTHLY_PRICE, text)
    if price:
        data["monthly_price"] = f"${price}/month"

    _set(data, "ssh_key_name", select_text(doc, '[data-testid="instances.descriptions.customKeySummary"] strong')
         or search(SSH_KEY, text))

    for pattern in SSH_USER_PATTERNS:
        user = search(pattern, text)
        if user:
            data["ssh_user"] = user
            break
    if data["ssh_user"] == NA and data["os"] != NA:
        data["ssh_user"] = patterns.guess_ssh_user(data["os"], default="admin")

    link = doc.select_one('a[href*="/remote/"][href*="/terminal"]')
    if link is not None and link.get("href"):
        data["connect_url"] = urljoin(url or "https://lightsail.aws.amazon.com/", link["href"])

    _set(data, "availability_zone", search(AZ, text))

    for key, value in patterns.extract_ips(text).items():
        if value:
            data[key] = value

    _set(data, "support_code", search(SUPPORT_CODE, text))
    _set(data, "created_at", search(CREATED, text))

    _set(data, "instance_type", select_text(
        doc,
        '[data-testid="instances.descriptions.generalPurpose"]',
        '[data-testid^="instances.descriptions."]:not([data-testid="instances.descriptions.customKeySummary"])',
    ))
    _set(data, "networking_type", select_text(
        doc,
        '[data-testid="instances.labels.networkTypeDualStack"]',
        '[data-testid*="networkType"]',
    ))

    static_container = _labelled_container(doc, "instances.label.staticIpAddress")
    if static_container is not None:
        ip = patterns.first_id(patterns.IPV4, text_of(static_container).replace("Static IP address", ""))
        if ip:
            data["public_ipv4"] = ip
            data["is_static_ip"] = True

    private_ip = _container_copy_value(_labelled_container(doc, "instances.label.privateIpAddress"))
    _set(data, "private_ipv4", private_ip)
    public_ipv6 = _container_copy_value(_labelled_container(doc, "instances.label.staticIpv6Address"))
    _set(data, "public_ipv6", public_ipv6)
    return data


def _size_gib(value: Optional[str]) -> int:
    match = SIZE_NUMBER.search(value or "")
    return int(match.group(1)) if match else 0


def extract_storage(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(STORAGE_FIELDS)
    if doc is None:
        return data

    system = doc.select_one(".integ_systemDiskSection")
    if system is not None:
        size = select_text(system, '[data-testid="ls.displayHelpersInstance.memoryInGB"]', '[data-testid*="memoryInGB"]')
        if size:
            data["system_disk_size"] = size
            data["total_storage_gib"] += _size_gib(size)
        _set(data, "system_disk_path", select_text(system, '[class*="selectedDiskPath"] strong'))
        _set(data, "system_disk_name", select_text(
            system,
            '[class*="ResourceReferenceName"] [class*="TruncatedText"]',
            '[class*="ResourceReferenceName"]',
        ))
        summary = text_of(system.select_one('[data-testid="ls.diskSummaryDisplay.summary"]'))
        if "block storage" in summary.lower():
            data["system_disk_type"] = "Block Storage"

    attached = doc.select_one(".integ_attachedDisksSection")
    if attached is not None and attached.select_one(
        '[data-testid="ls.instanceStorage.noAttachableDisksDescription"]'
    ) is None:
        for item in attached.select('[class*="ResourceReferenceItem"]'):
            disk = {
                "name": select_text(item, '[class*="ResourceReferenceName"]') or NA,
                "size": select_text(item, '[data-testid*="memoryInGB"]') or NA,
                "path": select_text(item, '[class*="selectedDiskPath"] strong') or NA,
                "status": select_text(item, '[data-testid*="status"]') or "Attached",
            }
            data["total_storage_gib"] += _size_gib(disk["size"])
            data["additional_disks"].append(disk)

    auto = select_text(doc, '[data-testid*="automaticSnapshot"]', '[data-testid*="autoSnapshot"]')
    if auto:
        data["automatic_snapshots"] = "Enabled" if "enabled" in auto.lower() else "Disabled"

    for row in doc.select('[data-testid*="snapshot"] tr, .snapshot-row'):
        cells = cell_texts(row)
        if is_placeholder_row(cells, minimum=2):
            continue
        data["snapshots"].append({
            "name": cells[0] or NA,
            "date": cells[1] or NA,
            "size": cells[2] if len(cells) > 2 and cells[2] else NA,
        })
    return data


def extract_port_range(cell) -> str:
    """Port range from a firewall cell; digits, dashes and commas only."""
    if cell is None:
        return NA
    for div in cell.find_all("div"):
        value = text_of(div)
        if value and PORT_TEXT.match(value):
            return value
    match = PORT_IN_TEXT.search(text_of(cell))
    return match.group(1) if match else NA


def _firewall_rules(doc, version: str) -> List[Dict[str, str]]:
    table = doc.select_one(
        f'.integ_{version}FirewallSection table, [data-analytics*="{version}FirewallSection"] table'
    )
    if table is None:
        return []
    default_scope = "Any IPv4 address" if version == "ipv4" else "Any IPv6 address"
    rules = []
    for row in body_rows(table):
        cells = row.find_all("td")
        texts = [text_of(c) for c in cells]
        if is_placeholder_row(texts, minimum=4):
            continue
        rule = {
            "application": texts[0],
            "protocol": texts[1],
            "port_range": extract_port_range(cells[2]),
            "restricted_to": texts[3] or default_scope,
        }
        if rule["application"] or rule["protocol"] or rule["port_range"] != NA:
            rules.append(rule)
    return rules


def extract_networking(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(NETWORKING_FIELDS)
    if doc is None:
        return data

    for key, test_id in (("public_ipv4", "publicIp"), ("private_ipv4", "privateIp")):
        label = doc.select_one(f'[data-testid="ls.instanceNetworkingIp.{test_id}"]')
        if label is None:
            continue
        for container in (label.parent, label.parent.parent if label.parent is not None else None):
            if container is None:
                continue
            value = select_text(container, "h2")
            if value:
                data[key] = value
                break

    static = doc.select_one('[data-testid="ls.instanceNetworkingIp.staticIpDescription"]')
    if static is not None:
        data["is_static_ip"] = True
        _set(data, "static_ip_name", search(STATIC_IP_NAME, text_of(static)))

    toggle = doc.select_one('[data-testid="ipv6ToggleSection"]')
    if toggle is not None and toggle.select_one('[data-testid="shared.ipv6Toggle.ipv6EnabledDescription"]') is not None:
        data["ipv6_enabled"] = True
        address = select_text(doc, '[data-testid="ipv6AddressDisplay"]')
        if address:
            data["ipv6_addresses"].append(address)
            data["public_ipv6"] = address

    data["ipv4_firewall_rules"] = _firewall_rules(doc, "ipv4")
    data["ipv6_firewall_rules"] = _firewall_rules(doc, "ipv6")

    no_balancers = select_text(doc, '[data-testid="ls.loadBalancersSection.noLoadBalancers"]')
    if no_balancers:
        data["load_balancing_status"] = no_balancers
    else:
        for item in doc.select('[data-testid*="loadBalancer"]'):
            name = present(text_of(item))
            if name:
                data["load_balancers"].append({"name": name})

    no_distributions = select_text(doc, '[data-testid="instances.networkingDistributions.noDistributions"]')
    if no_distributions:
        data["distribution_status"] = no_distributions
    return data


def extract_domains(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(DOMAINS_FIELDS)
    if doc is None:
        return data

    domains = []
    for element in doc.select('[data-testid*="domain"], .domain-info, .dns-info, a[href*="domain"]'):
        if element.name in ("tr", "table", "tbody"):
            continue
        value = text_of(element)
        if value and "." in value and len(value) < 100 and value not in domains:
            domains.append(value)

    for row in doc.select('.domains-table tr, [data-testid*="domain"] tr'):
        cells = cell_texts(row)
        if is_placeholder_row(cells, minimum=2):
            continue
        # a parsed row supersedes the plain name found by the element scan
        domains = [d for d in domains if d != cells[0]]
        domains.append({
            "name": cells[0] or NA,
            "type": cells[1] or NA,
            "status": cells[2] if len(cells) > 2 and cells[2] else NA,
        })

    for row in doc.select('[data-testid*="certificate"] tr'):
        cells = cell_texts(row)
        if not is_placeholder_row(cells, minimum=1) and cells[0]:
            data["certificates"].append(cells[0])
    for row in doc.select('[data-testid*="dnsZone"] tr'):
        cells = cell_texts(row)
        if not is_placeholder_row(cells, minimum=1) and cells[0]:
            data["dns_zones"].append(cells[0])

    data["domains"] = domains
    if not domains:
        data["domains_status"] = "No domains configured"
    return data


def extract_tags(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(TAGS_FIELDS)
    if doc is None:
        return data

    for row in doc.select('.tags-table tbody tr, [data-testid*="tag"] tr, table tbody tr'):
        cells = cell_texts(row)
        if not cells or "no " in cells[0].lower():
            continue
        key = clean(cells[0])
        if not key or key == "Key" or len(key) >= 100:
            continue
        if len(cells) >= 2:
            data["tags"][key] = clean(cells[1])
        elif key not in data["key_only_tags"]:
            data["key_only_tags"].append(key)

    for badge in doc.select('[class*="tag-badge"], [class*="TagBadge"]'):
        value = text_of(badge)
        if not value or len(value) >= 50:
            continue
        if ":" in value:
            key, tag_value = value.split(":", 1)
            data["tags"][key.strip()] = tag_value.strip()
        elif value not in data["key_only_tags"]:
            data["key_only_tags"].append(value)

    data["tag_count"] = len(data["tags"]) + len(data["key_only_tags"])
    return data


EXTRACTORS = {
    "connect": extract_connect,
    "storage": extract_storage,
    "networking": extract_networking,
    "domains": extract_domains,
    "tags": extract_tags,
}


def list_instance_names(doc) -> List[str]:
    """Instance names linked from the Lightsail home page, in page order."""
    if doc is None:
        return []
    names = []
    for link in doc.select('a[href*="/instances/"]'):
        name = instance_name_from_url(link.get("href", ""))
        if name and name not in names:
            names.append(name)
    return names
