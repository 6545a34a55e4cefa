"""
Aggregator: runs the tab loop for one instance and merges the partials.

Merge rules:
    - the base tab (Details for EC2, Connect for Lightsail) is applied first
    - every later tab only fills fields that are still N/A or empty
    - name falls back to the Name tag
    - security_groups prefers the Security tab's name-augmented list
    - security_group_rules is inbound followed by outbound
    - Lightsail firewall_rules is the flattened display list of both rule sets
"""
import copy
import logging
from typing import Any, Dict, Optional

from awsshare.dom import NA, is_missing, is_valid
from awsshare.errors import ExtractionError
from awsshare.extractors import account, ec2, lightsail
from awsshare.formatter import format_firewall_rules
from awsshare.models import InstanceRecord
from awsshare.tabs import TABS, Settle, activate_tab, capture_snapshot

logger = logging.getLogger(__name__)

EXTRACTORS = {"ec2": ec2.EXTRACTORS, "lightsail": lightsail.EXTRACTORS}
TAB_FIELDS = {"ec2": ec2.TAB_FIELDS, "lightsail": lightsail.TAB_FIELDS}
BASE_TAB = {"ec2": "details", "lightsail": "connect"}


def detect_service(url: str) -> Optional[str]:
    """'ec2' on an EC2 instance page, 'lightsail' on Lightsail, else None."""
    url = url or ""
    if "lightsail.aws.amazon.com" in url:
        return "lightsail"
    if "console.aws.amazon.com/ec2" in url and ("/instances/" in url or "#InstanceDetails:" in url):
        return "ec2"
    return None


def declared_fields(service: str) -> Dict[str, Any]:
    """Every field any tab of the service declares, with its default."""
    fields = {}
    for table in TAB_FIELDS[service].values():
        for key, value in table.items():
            fields.setdefault(key, copy.deepcopy(value))
    return fields


def aggregate(service: str, partials: Dict[str, Dict[str, Any]], region: str = "") -> InstanceRecord:
    """Merge per-tab partial records into one Instance Record.

    Raises ExtractionError when no instance identifier can be resolved.
    """
    if service not in TAB_FIELDS:
        raise ValueError(f"Unknown service: {service}")

    fields = declared_fields(service)
    base = BASE_TAB[service]
    order = [base] + [tab for tab in TAB_FIELDS[service] if tab != base]

    for tab in order:
        partial = partials.get(tab) or {}
        for key, value in partial.items():
            if tab == base:
                if is_valid(value) or key not in fields:
                    fields[key] = copy.deepcopy(value)
            elif is_missing(fields.get(key)) and is_valid(value):
                fields[key] = copy.deepcopy(value)

    # Security tab groups carry the rule-group names, so they replace any
    # earlier value rather than only filling a gap.
    security = partials.get("security") or {}
    if is_valid(security.get("security_groups")):
        fields["security_groups"] = security["security_groups"]

    tags = fields.get("tags") or {}
    if is_missing(fields.get("name")) and is_valid(tags.get("Name")):
        fields["name"] = tags["Name"]

    if service == "ec2":
        fields["security_group_rules"] = list(fields.get("inbound_rules") or []) + list(
            fields.get("outbound_rules") or []
        )
        instance_id = fields.get("instance_id")
    else:
        fields["firewall_rules"] = format_firewall_rules(fields)
        instance_id = fields.get("instance_name")
        if not is_valid(instance_id):
            instance_id = fields.get("name")
        fields["instance_id"] = instance_id if is_valid(instance_id) else NA

    if not is_valid(instance_id):
        raise ExtractionError()

    name = fields.get("name") if is_valid(fields.get("name")) else NA
    return InstanceRecord(
        instance_id=instance_id,
        service=service,
        region=region or "",
        name=name,
        fields=fields,
        tabs_data={tab: copy.deepcopy(partial) for tab, partial in partials.items()},
    )


async def scrape_instance(page, service: str, settle: Optional[Settle] = None) -> InstanceRecord:
    """Walk every tab of the instance page shown in `page` and aggregate.

    A tab that cannot be found, or whose extractor raises, contributes an
    empty partial; the base tab is always extracted from whatever is shown.
    """
    extractors = EXTRACTORS[service]
    base = BASE_TAB[service]
    partials = {}
    region = ""

    for tab in TABS[service]:
        try:
            found = await activate_tab(page, tab, settle)
        except Exception as e:
            logger.debug("Could not switch to tab %r: %s", tab.name, e)
            found = False
        if not found and tab.name != base:
            partials[tab.name] = {}
            continue
        try:
            snapshot = await capture_snapshot(page)
            partials[tab.name] = extractors[tab.name](snapshot.document, snapshot.url)
            if not region:
                region = account.extract_region(snapshot.top, snapshot.url)
        except Exception as e:
            logger.debug("Extraction failed on tab %r: %s", tab.name, e)
            partials[tab.name] = {}

    return aggregate(service, partials, region=region)
