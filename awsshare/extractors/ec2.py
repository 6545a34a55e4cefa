"""
EC2 instance detail tabs: Details, Security, Networking, Storage, Tags.

Each extractor takes the parsed active document (plus the page URL) and
returns a flat dict holding every key of its field table, using N/A (or
an empty list/mapping) for whatever the page did not show.
"""
import copy
import re
from typing import Any, Dict, List, Optional

from awsshare import patterns
from awsshare.dom import (
    NA,
    clean,
    copy_to_clipboard_value,
    extract_any,
    extract_field,
    is_valid,
    page_text,
    present,
    search,
    text_of,
)
from awsshare.tables import (
    TableRole,
    body_rows,
    cell_at,
    cell_texts,
    column_index,
    is_placeholder_row,
    table_headers,
    tables_with_role,
)

URL_INSTANCE_ID = re.compile(r"/instances/(i-[a-f0-9]{8,17})")
HASH_INSTANCE_ID = re.compile(r"[#&]InstanceDetails:instanceId=(i-[a-f0-9]{8,17})")
HEADER_NAME = re.compile(r"\(([^)]+)\)$")

STATE_PATTERNS = (
    re.compile(r"Instance state:\s*([a-zA-Z-]+)", re.I),
    re.compile(r"\bState:\s*([a-zA-Z-]+)", re.I),
    re.compile(r"\b(running|stopped|pending|shutting-down|terminated|stopping)\b", re.I),
)
INSTANCE_TYPE_PATTERN = re.compile(r"Instance type:?\s*([a-z][a-z0-9-]*\d[a-z0-9-]*\.[a-z0-9]+)", re.I)
AZ_PATTERN = re.compile(r"Availability Zone:?\s*([a-z]{2}-[a-z]+-\d[a-z])", re.I)

AMI_OS_PATTERN = re.compile(
    r"(ubuntu|centos|rhel|amazon|amzn|windows|debian|suse)[\w\-]*?[\-/](\d+(?:\.\d+)?|jammy|focal|bionic|noble)",
    re.I,
)
OS_NAMES = {
    "ubuntu": "Ubuntu",
    "centos": "CentOS",
    "rhel": "RHEL",
    "amazon": "Amazon Linux",
    "amzn": "Amazon Linux",
    "windows": "Windows",
    "debian": "Debian",
    "suse": "SUSE",
}
OS_TEXT_PATTERNS = (
    re.compile(r"\b(Ubuntu|Amazon Linux|Windows Server|Windows|CentOS|RHEL|Red Hat|Debian|SUSE)\s+(\d[\w.]*)"),
    re.compile(r"\bPlatform:\s*([^\n\r]+)", re.I),
    re.compile(r"\bOS:\s*([^\n\r]+)", re.I),
    re.compile(r"\b(Ubuntu|Amazon Linux|Windows|CentOS|RHEL|SUSE|Debian)\b"),
)

SG_LINK_TEXT = re.compile(r"^(sg-[a-f0-9]+)\s*\((.+)\)$")
PIPE_SUFFIX = re.compile(r"\s*\|.*$")
KEY_NAME = re.compile(r"([a-zA-Z0-9._-]+)$")

VOLUME_SIZE = re.compile(r"(\d+)\s*GiB", re.I)
VOLUME_TYPE = re.compile(r"\b(gp2|gp3|io1|io2|st1|sc1|standard)\b", re.I)
DEVICE_NAME = re.compile(r"/dev/[a-z]+\d*")
IOPS = re.compile(r"(\d+)\s*IOPS", re.I)
THROUGHPUT = re.compile(r"(\d+)\s*MB/s", re.I)
ROOT_DEVICE = re.compile(r"Root device(?: name)?[:\s]+(/dev/[a-z]+\d*)", re.I)
ROOT_DEVICE_TYPE = re.compile(r"Root device type[:\s]+(ebs|instance-store)", re.I)


# key -> label spellings, tried in order
DETAIL_LABELS = (
    ("instance_type", ("Instance type",)),
    ("lifecycle", ("Lifecycle",)),
    ("availability_zone", ("Availability Zone",)),
    ("tenancy", ("Tenancy",)),
    ("placement_group", ("Placement group",)),
    ("host_id", ("Host ID",)),
    ("capacity_reservation", ("Capacity Reservation",)),
    ("partition_number", ("Partition number",)),
    ("ami_id", ("AMI ID",)),
    ("ami_name", ("AMI name", "details_ami_name")),
    ("ami_location", ("AMI location",)),
    ("platform", ("Platform",)),
    ("platform_details", ("Platform details",)),
    ("architecture", ("Architecture",)),
    ("virtualization_type", ("Virtualization type", "Virtualization")),
    ("boot_mode", ("Boot mode",)),
    ("launch_time", ("Launch time",)),
    ("usage_operation", ("Usage operation",)),
    ("usage_operation_update_time", ("Usage operation update time",)),
    ("iam_role", ("IAM Role", "IAM role")),
    ("iam_instance_profile", ("IAM instance profile",)),
    ("public_dns_name", ("Public IPv4 DNS",)),
    ("public_dns", ("Public DNS",)),
    ("private_dns_name", ("Private IPv4 DNS", "Private IP DNS name")),
    ("private_ip_dns", ("private-IP-DNS", "Private IP DNS name (IPv4 only)")),
    ("private_ipv4", ("Private IPv4 addresses", "Private IPv4 address")),
    ("vpc_id", ("VPC ID",)),
    ("subnet_id", ("Subnet ID",)),
    ("source_dest_check", ("Source/dest. check",)),
    ("ipv6_addresses", ("IPv6 addresses", "IPv6 address")),
    ("hostname_type", ("Hostname type",)),
    ("answer_private_dns_name", ("Answer private resource DNS name",)),
    ("elastic_ip", ("elasticIP_field", "Elastic IP addresses", "Elastic IP")),
    ("auto_assigned_ip", ("autoAssignedIP_field", "Auto-assigned IP address", "Auto-assigned IP")),
    ("instance_arn", ("instance-arn", "Instance ARN")),
    ("owner_id", ("owner-id", "Owner ID", "Owner")),
    ("managed", ("Managed",)),
    ("operator", ("Operator",)),
    ("system_status_check", ("System status check",)),
    ("instance_status_check", ("Instance status check",)),
    ("status_checks", ("Status checks", "Status check")),
    ("alarm_status", ("Alarm status",)),
    ("cpu_core_count", ("Number of vCPUs", "Core count")),
    ("cpu_threads_per_core", ("Threads per core",)),
    ("cpu_options", ("CPU options",)),
    ("credit_specification", ("Credit specification",)),
    ("monitoring", ("Monitoring",)),
    ("ebs_optimized", ("EBS-optimized", "EBS optimized")),
    ("nitro_enclave", ("Nitro Enclave", "Enclave")),
    ("hibernation", ("Stop - Hibernate behavior", "Hibernation")),
    ("elastic_gpu_id", ("Elastic GPU ID",)),
    ("elastic_inference_accelerator", ("Elastic Inference accelerator",)),
    ("root_device", ("Root device name",)),
    ("root_device_type", ("Root device type",)),
    ("metadata_accessible", ("Instance metadata", "Metadata accessible")),
    ("imdsv2", ("IMDSv2",)),
    ("http_tokens", ("HTTP tokens",)),
    ("http_put_response_hop_limit", ("HTTP put response hop limit",)),
    ("http_endpoint", ("HTTP endpoint",)),
    ("instance_metadata_tags", ("Instance metadata tags", "Allow tags in instance metadata")),
    ("auto_recovery", ("Instance auto-recovery", "Auto-recovery", "Auto recovery")),
    ("stop_protection", ("Stop protection",)),
    ("termination_protection", ("Termination protection",)),
    ("maintenance_status", ("Maintenance",)),
    ("license_configuration", ("License configuration",)),
    ("security_groups", ("Security groups",)),
)

DETAILS_FIELDS: Dict[str, Any] = {
    "instance_id": NA,
    "name": NA,
    "state": NA,
    **{key: NA for key, _ in DETAIL_LABELS},
    "key_pair": NA,
    "public_ipv4": NA,
    "public_ipv6": NA,
    "private_ipv6": NA,
    "os": NA,
    "os_version": NA,
    "ebs": NA,
    "ebs_optimization": NA,
}

SECURITY_FIELDS: Dict[str, Any] = {
    "security_groups": NA,
    "security_group_details": [],
    "inbound_rules": [],
    "outbound_rules": [],
    "iam_role": NA,
}

NETWORKING_FIELDS: Dict[str, Any] = {
    "vpc_id": NA,
    "subnet_id": NA,
    "public_dns_name": NA,
    "private_dns_name": NA,
    "public_ipv4": NA,
    "private_ipv4": NA,
    "public_ipv6": NA,
    "private_ipv6": NA,
    "ipv6_address_list": [],
    "security_groups": NA,
    "network_interfaces": [],
    "elastic_ip_allocations": [],
    "ipv4_addresses": {},
}

STORAGE_FIELDS: Dict[str, Any] = {
    "root_device_name": NA,
    "root_device_type": NA,
    "ebs_optimization": NA,
    "block_devices": [],
    "volume_ids": [],
    "total_storage_gib": 0,
}

TAGS_FIELDS: Dict[str, Any] = {
    "tags": {},
    "tag_count": 0,
}

TAB_FIELDS = {
    "details": DETAILS_FIELDS,
    "security": SECURITY_FIELDS,
    "networking": NETWORKING_FIELDS,
    "storage": STORAGE_FIELDS,
    "tags": TAGS_FIELDS,
}


def _defaults(fields: Dict[str, Any]) -> Dict[str, Any]:
    return copy.deepcopy(fields)


def _set(data: Dict[str, Any], key: str, value: Optional[str]):
    value = present(value)
    if value:
        data[key] = value


def instance_id_from_url(url: str) -> Optional[str]:
    for pattern in (URL_INSTANCE_ID, HASH_INSTANCE_ID):
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


def find_instance_id(doc, url: str = "") -> Optional[str]:
    """Instance ID from the URL, the labelled field, or the page markup."""
    found = instance_id_from_url(url)
    if found:
        return found
    labelled = extract_field(doc, "Instance ID") if doc is not None else None
    found = patterns.first_id(patterns.INSTANCE_ID, labelled or "")
    if found:
        return found
    return patterns.first_id(patterns.INSTANCE_ID, str(doc) if doc is not None else "")


def header_name(doc, instance_id: Optional[str] = None) -> Optional[str]:
    """Name from a header like 'Instance summary for i-0abc (web-1)'."""
    for selector in ('[data-testid="header-title"] h1', "h1"):
        text = text_of(doc.select_one(selector))
        if not text:
            continue
        match = HEADER_NAME.search(text)
        if match:
            return present(match.group(1))
        if "instance" in text.lower() or "summary" in text.lower() or text == instance_id:
            continue
        return present(text)
    return None


def os_from_ami_name(ami_name: Optional[str]):
    """(os, version) parsed from an AMI name, or (None, None)."""
    match = AMI_OS_PATTERN.search(ami_name or "")
    if not match:
        return None, None
    os_name = OS_NAMES[match.group(1).lower()]
    version = match.group(2).lower()
    version = patterns.UBUNTU_CODENAMES.get(version, version)
    return os_name, version


def os_from_text(text: str):
    for pattern in OS_TEXT_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        os_name = present(match.group(1))
        version = present(match.group(2)) if pattern.groups > 1 else None
        if os_name:
            return os_name, version
    return None, None


def extract_details(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(DETAILS_FIELDS)
    if doc is None:
        return data
    text = page_text(doc)

    _set(data, "instance_id", find_instance_id(doc, url))
    _set(data, "name", header_name(doc, data["instance_id"]))

    for key, labels in DETAIL_LABELS:
        _set(data, key, extract_any(doc, *labels))

    state = extract_field(doc, "Instance state")
    if state:
        state = re.sub(r"^Instance state", "", state, flags=re.I)
    if not present(state):
        for pattern in STATE_PATTERNS:
            state = search(pattern, text)
            if state:
                break
    _set(data, "state", state)

    if not is_valid(data["instance_type"]):
        _set(data, "instance_type", search(INSTANCE_TYPE_PATTERN, text))
    if not is_valid(data["availability_zone"]):
        _set(data, "availability_zone", search(AZ_PATTERN, text))

    key_pair = extract_any(doc, "Key pair assigned at launch", "Key pair name", "Key pair")
    if key_pair:
        match = KEY_NAME.search(key_pair)
        _set(data, "key_pair", match.group(1) if match else key_pair)

    public_ipv4 = extract_field(doc, "Public IPv4 address")
    if public_ipv4:
        _set(data, "public_ipv4", PIPE_SUFFIX.sub("", public_ipv4))

    if not is_valid(data["ami_name"]):
        _set(data, "ami_name", copy_to_clipboard_value(doc, "details_ami_name"))
    os_name, version = os_from_ami_name(data["ami_name"])
    if not os_name:
        os_name, version = os_from_text(text)
    _set(data, "os", os_name)
    _set(data, "os_version", version)

    if not is_valid(data["root_device"]):
        _set(data, "root_device", search(ROOT_DEVICE, text))
    if not is_valid(data["root_device_type"]):
        _set(data, "root_device_type", search(ROOT_DEVICE_TYPE, text))

    volumes = patterns.find_ids(patterns.VOLUME_ID, text)
    if volumes:
        data["ebs"] = ", ".join(volumes)

    optimization = extract_field(doc, "EBS optimization")
    if optimization:
        _set(data, "ebs_optimization", optimization)
    elif "EBS-optimized" in text or "EBS optimization" in text:
        data["ebs_optimization"] = "enabled" if "enabled" in text.lower() else "disabled"

    ips = patterns.extract_ips(text)
    for key, value in ips.items():
        if value and not is_valid(data[key]):
            data[key] = value

    return data


def _security_group_details(doc) -> List[Dict[str, str]]:
    details = []
    seen = set()

    def add(group_id: str, group_name: str):
        if group_id in seen:
            return
        seen.add(group_id)
        details.append({"group_id": group_id, "group_name": group_name})

    for link in doc.select('a[data-analytics="security-groups-link"]'):
        text = text_of(link)
        match = SG_LINK_TEXT.match(text)
        if match:
            add(match.group(1), match.group(2))
        elif patterns.SECURITY_GROUP_ID.match(text):
            add(patterns.first_id(patterns.SECURITY_GROUP_ID, text), "")

    for link in doc.select('a[href*="security-groups"], a[href*="SecurityGroup"]'):
        href = link.get("href", "")
        text = text_of(link)
        group_id = patterns.first_id(patterns.SECURITY_GROUP_ID, href) or patterns.first_id(
            patterns.SECURITY_GROUP_ID, text
        )
        if not group_id:
            continue
        match = SG_LINK_TEXT.match(text)
        if match:
            add(group_id, match.group(2))
        else:
            add(group_id, "" if text == group_id else text)
    return details


def format_security_groups(details: List[Dict[str, str]]) -> str:
    parts = []
    for group in details:
        name = group.get("group_name")
        parts.append(f"{group['group_id']} ({name})" if name else group["group_id"])
    return ", ".join(parts)


def parse_rule_rows(table, direction: str) -> List[Dict[str, str]]:
    """Security group rules from an inbound or outbound rules table."""
    headers = table_headers(table)
    peer = "source" if direction == "inbound" else "destination"
    port_col = column_index(headers, "port")
    protocol_col = column_index(headers, "protocol")
    peer_col = column_index(headers, peer)
    description_col = column_index(headers, "description")
    if port_col is None and protocol_col is None:
        port_col, protocol_col, peer_col, description_col = 2, 3, 4, 6

    rules = []
    for row in body_rows(table):
        cells = cell_texts(row)
        if is_placeholder_row(cells, minimum=3):
            continue
        port = present(cell_at(cells, port_col))
        protocol = present(cell_at(cells, protocol_col))
        if not port and not protocol:
            continue
        rules.append({
            "type": direction,
            "port": port or "",
            "protocol": protocol or "",
            peer: present(cell_at(cells, peer_col)) or "",
            "description": present(cell_at(cells, description_col)) or "",
        })
    return rules


def extract_security(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(SECURITY_FIELDS)
    if doc is None:
        return data
    text = page_text(doc)

    details = _security_group_details(doc)
    if not details:
        details = [{"group_id": sg, "group_name": ""} for sg in patterns.find_ids(patterns.SECURITY_GROUP_ID, text)]
    data["security_group_details"] = details
    if details:
        data["security_groups"] = format_security_groups(details)

    for link in doc.select('a[href*="iam"]'):
        role = text_of(link)
        if len(role) > 3 and "IAM" not in role:
            data["iam_role"] = role
            break

    for table in tables_with_role(doc, TableRole.INBOUND):
        data["inbound_rules"].extend(parse_rule_rows(table, "inbound"))
    for table in tables_with_role(doc, TableRole.OUTBOUND):
        data["outbound_rules"].extend(parse_rule_rows(table, "outbound"))
    return data


def _interface_rows(doc) -> List[Dict[str, str]]:
    interfaces = []
    seen = set()
    for table in doc.find_all("table"):
        headers = table_headers(table)
        description_col = column_index(headers, "description")
        for row in body_rows(table):
            cells = cell_texts(row)
            eni = patterns.first_id(patterns.ENI_ID, " ".join(cells))
            if not eni or eni in seen:
                continue
            seen.add(eni)
            interface = {
                "eni_id": eni,
                "description": present(cell_at(cells, description_col)) or "",
                "subnet_id": "",
                "private_ip": "",
                "public_ip": "",
            }
            for cell in cells:
                subnet = patterns.first_id(patterns.SUBNET_ID, cell)
                if subnet and not interface["subnet_id"]:
                    interface["subnet_id"] = subnet
                if patterns.IPV4.fullmatch(cell):
                    kind = patterns.classify_ipv4(cell)
                    if kind and not interface[f"{kind}_ip"]:
                        interface[f"{kind}_ip"] = cell
            interfaces.append(interface)
    return interfaces


def extract_networking(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(NETWORKING_FIELDS)
    if doc is None:
        return data
    text = page_text(doc)

    _set(data, "vpc_id", copy_to_clipboard_value(doc, "vpc-id") or extract_field(doc, "VPC ID")
         or patterns.first_id(patterns.VPC_ID, text))
    _set(data, "subnet_id", copy_to_clipboard_value(doc, "subnet-id") or extract_field(doc, "Subnet ID")
         or patterns.first_id(patterns.SUBNET_ID, text))
    _set(data, "public_dns_name", extract_field(doc, "Public IPv4 DNS"))
    _set(data, "private_dns_name", extract_field(doc, "Private IPv4 DNS"))

    public_ip = extract_field(doc, "Public IPv4 address")
    if public_ip:
        _set(data, "public_ipv4", PIPE_SUFFIX.sub("", public_ip))
    _set(data, "private_ipv4", extract_field(doc, "Private IPv4 addresses"))
    _set(data, "public_ipv6", extract_field(doc, "IPv6 addresses"))

    ips = patterns.extract_ips(text)
    for key, value in ips.items():
        if value and not is_valid(data[key]):
            data[key] = value

    data["ipv4_addresses"] = patterns.scan_ipv4(text)
    data["ipv6_address_list"] = patterns.find_ipv6(text)
    data["elastic_ip_allocations"] = patterns.find_ids(patterns.EIP_ALLOCATION_ID, text)

    groups = patterns.find_ids(patterns.SECURITY_GROUP_ID, text)
    if groups:
        data["security_groups"] = ", ".join(groups)

    interfaces = _interface_rows(doc)
    if not interfaces:
        interfaces = [
            {"eni_id": eni, "description": "", "subnet_id": "", "private_ip": "", "public_ip": ""}
            for eni in patterns.find_ids(patterns.ENI_ID, text)
        ]
    data["network_interfaces"] = interfaces
    return data


def _yes(value: str) -> bool:
    return value.strip().lower() in ("yes", "true", "enabled")


def parse_block_device_row(cells: List[str], headers: List[str]) -> Optional[Dict[str, Any]]:
    row_text = " ".join(cells)
    volume_id = patterns.first_id(patterns.VOLUME_ID, row_text)
    device = DEVICE_NAME.search(row_text)

    size_match = VOLUME_SIZE.search(row_text)
    size = int(size_match.group(1)) if size_match else None
    if size is None:
        raw = cell_at(cells, column_index(headers, "size")).strip()
        size = int(raw) if raw.isdigit() else None

    type_match = VOLUME_TYPE.search(row_text)
    iops = IOPS.search(row_text)
    throughput = THROUGHPUT.search(row_text)

    delete_col = column_index(headers, "delete on termination")
    if delete_col is not None:
        delete_on_termination = _yes(cell_at(cells, delete_col))
    else:
        lowered = row_text.lower()
        delete_on_termination = "yes" in lowered or "true" in lowered

    encrypted_col = column_index(headers, "encrypted")
    if encrypted_col is not None:
        encrypted = _yes(cell_at(cells, encrypted_col))
    else:
        lowered = row_text.lower()
        encrypted = "encrypted" in lowered and "not encrypted" not in lowered

    if not volume_id and not device:
        return None
    return {
        "volume_id": volume_id,
        "device_name": device.group(0) if device else None,
        "size": size,
        "volume_type": type_match.group(1).lower() if type_match else None,
        "iops": int(iops.group(1)) if iops else None,
        "throughput": int(throughput.group(1)) if throughput else None,
        "delete_on_termination": delete_on_termination,
        "encrypted": encrypted,
    }


def extract_storage(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(STORAGE_FIELDS)
    if doc is None:
        return data
    text = page_text(doc)

    _set(data, "root_device_name", extract_any(doc, "root-device-name", "Root device name")
         or search(ROOT_DEVICE, text))
    _set(data, "root_device_type", extract_field(doc, "Root device type") or search(ROOT_DEVICE_TYPE, text))
    _set(data, "ebs_optimization", extract_field(doc, "EBS optimization"))

    devices = []
    for table in tables_with_role(doc, TableRole.BLOCK_DEVICES):
        headers = table_headers(table)
        for row in body_rows(table):
            cells = cell_texts(row)
            if is_placeholder_row(cells, minimum=2):
                continue
            device = parse_block_device_row(cells, headers)
            if device:
                devices.append(device)

    data["block_devices"] = devices
    data["total_storage_gib"] = sum(device["size"] or 0 for device in devices)
    data["volume_ids"] = patterns.unique(
        [d["volume_id"] for d in devices if d["volume_id"]] + patterns.find_ids(patterns.VOLUME_ID, text)
    )
    return data


def extract_tags(doc, url: str = "") -> Dict[str, Any]:
    data = _defaults(TAGS_FIELDS)
    if doc is None:
        return data

    tables = tables_with_role(doc, TableRole.TAGS) or doc.find_all("table")
    tags = {}
    for table in tables:
        for row in body_rows(table):
            cells = cell_texts(row)
            if is_placeholder_row(cells, minimum=2):
                continue
            key, value = clean(cells[0]), clean(cells[1])
            if key and key != "Key" and value != "Value":
                tags[key] = value
    data["tags"] = tags
    data["tag_count"] = len(tags)
    return data


EXTRACTORS = {
    "details": extract_details,
    "security": extract_security,
    "networking": extract_networking,
    "storage": extract_storage,
    "tags": extract_tags,
}


def list_instance_ids(doc) -> List[str]:
    """Instance IDs from the instances list table, in page order."""
    if doc is None:
        return []
    cells = " ".join(text_of(td) for td in doc.find_all("td"))
    return patterns.find_ids(patterns.INSTANCE_ID, cells)
