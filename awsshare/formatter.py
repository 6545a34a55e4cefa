"""
Email body formatter.

Renders an InstanceRecord as a plain-text body made of titled sections.
A section with no valid lines is left out entirely. The compact variant
only shortens the separator so the body fits in a composer URL.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from awsshare import patterns
from awsshare.dom import NA, is_valid
from awsshare.extractors.account import DEFAULT_REGION
from awsshare.models import InstanceRecord

SEPARATOR_SHORT = "─" * 32
SEPARATOR_FULL = "─" * 65

SERVICE_NAMES = {"ec2": "EC2", "lightsail": "Lightsail"}
FIREWALL_LABELS = {"ipv4": "IPv4", "ipv6": "IPv6"}


def repair_port_range(token: Optional[str]) -> Optional[str]:
    """Split a run-together range like '5010050500' into '50100-50500'.

    Best effort: the token is cut at its midpoint and only rejoined when
    both halves are numbers that differ. Anything else is returned as is.
    """
    if not token or len(token) <= 5 or "-" in token:
        return token
    half = len(token) // 2
    first, second = token[:half], token[half:]
    if first.isdigit() and second.isdigit() and int(first) != int(second):
        return f"{first}-{second}"
    return token


def format_firewall_rules(networking: Dict[str, Any]) -> List[str]:
    """Flat display list of a Lightsail instance's firewall rules."""
    rules = []
    for version in ("ipv4", "ipv6"):
        entries = networking.get(f"{version}_firewall_rules") or []
        if not entries:
            continue
        rules.append(f"=== {FIREWALL_LABELS[version]} Firewall Rules ===")
        for rule in entries:
            rules.append(_firewall_line(rule))
    return rules or [NA]


def _firewall_line(rule: Dict[str, Any]) -> str:
    port_range = repair_port_range(rule.get("port_range")) or NA
    return f"{rule.get('application', '')} ({rule.get('protocol', '')} {port_range}) - {rule.get('restricted_to', '')}"


def console_url(record: InstanceRecord, account_info: Optional[Dict[str, str]] = None) -> Optional[str]:
    account_info = account_info or {}
    region = record.region or account_info.get("region") or DEFAULT_REGION
    if record.service == "lightsail":
        if not is_valid(record.name):
            return None
        return f"https://lightsail.aws.amazon.com/ls/webapp/{region}/instances/{quote(record.name, safe='')}"
    if not is_valid(record.instance_id):
        return None
    return (
        f"https://{region}.console.aws.amazon.com/ec2/home?region={region}"
        f"#Instances:instanceId={record.instance_id}"
    )


def build_subject(record: InstanceRecord) -> str:
    if record.service == "lightsail":
        if is_valid(record.name):
            subject = f"🚀 {record.name} - AWS Lightsail Instance"
        else:
            subject = "🚀 AWS Lightsail Instance Details"
    elif is_valid(record.name) and record.name != record.instance_id:
        subject = f"{record.name} - AWS EC2 Instance"
    else:
        subject = "AWS EC2 Instance Details"

    if is_valid(record.state):
        subject += f" [{record.state.upper()}]"
    return subject


class _Body:
    """Collects sections; a section without lines is never emitted."""

    def __init__(self, record: InstanceRecord, separator: str):
        self.record = record
        self.separator = separator
        self.out: List[str] = []

    def value(self, key: str) -> Any:
        return self.record.get(key)

    def field(self, lines: List[str], label: str, key: str, suffix: str = ""):
        value = self.value(key)
        if is_valid(value):
            lines.append(f"{label}: {value}{suffix}")

    def section(self, title: str, lines: List[str]):
        if not lines:
            return
        self.out.extend(["", title, self.separator])
        self.out.extend(lines)
        self.out.append("")


def _account_section(body: _Body, account_info: Dict[str, str]):
    record = body.record
    lines = []
    if account_info.get("id"):
        lines.append(f"🆔 Account ID: {account_info['id']}")
    if account_info.get("name"):
        lines.append(f"📊 Account Name: {account_info['name']}")
    if record.service == "lightsail":
        region = record.region or account_info.get("region")
        if region:
            lines.append(f"🌍 Region: {region}")
    lines.append(f"🌐 Service: AWS {SERVICE_NAMES.get(record.service, record.service)}")
    body.section("🏢 ACCOUNT INFORMATION", lines)


def _overview_section(body: _Body, account_info: Dict[str, str]):
    record = body.record
    lines = []
    if record.service == "lightsail":
        if is_valid(record.name):
            lines.append(f"📝 Instance Name: {record.name}")
        body.field(lines, "💰 Bundle", "bundle")
        body.field(lines, "🖥️ Instance Type", "instance_type")
        body.field(lines, "🧠 RAM", "ram")
        body.field(lines, "⚙️ vCPUs", "vcpus")
        body.field(lines, "🌐 Networking Type", "networking_type")
        body.field(lines, "📡 Transfer", "transfer_allowance")
        body.field(lines, "📅 Created", "created_at")
        body.field(lines, "🆘 Support Code", "support_code")
    else:
        body.field(lines, "🔖 Instance ID", "instance_id")
        body.field(lines, "📎 Instance ARN", "instance_arn")
        if is_valid(record.name) and record.name != record.instance_id:
            lines.append(f"📝 Name: {record.name}")
        body.field(lines, "⚙️ Instance Type", "instance_type")
        body.field(lines, "🔄 Lifecycle", "lifecycle")
        body.field(lines, "📅 Launch Time", "launch_time")
        body.field(lines, "👤 Owner ID", "owner_id")
        body.field(lines, "🔧 Managed", "managed")
        body.field(lines, "⚙️ Operator", "operator")

    if is_valid(record.state):
        lines.append(f"🔄 State: {record.state.upper()}")
    body.field(lines, "📍 Availability Zone", "availability_zone")

    if record.service == "ec2":
        region = record.region or account_info.get("region")
        if region:
            lines.append(f"🌍 Region: {region}")
        body.field(lines, "🏠 Tenancy", "tenancy")
        body.field(lines, "📦 Placement Group", "placement_group")
    body.section(f"💻 {SERVICE_NAMES.get(record.service, record.service).upper()} INSTANCE OVERVIEW", lines)


def _ami_section(body: _Body):
    if body.record.service != "ec2":
        return
    if not (is_valid(body.value("ami_id")) or is_valid(body.value("ami_name"))):
        return
    lines = []
    body.field(lines, "🆔 AMI ID", "ami_id")
    body.field(lines, "📝 AMI Name", "ami_name")
    body.field(lines, "📍 AMI Location", "ami_location")
    body.field(lines, "💻 Platform", "platform")
    body.field(lines, "📋 Platform Details", "platform_details")
    body.field(lines, "🏗️ Architecture", "architecture")
    body.field(lines, "🔧 Virtualization", "virtualization_type")
    body.field(lines, "🚀 Boot Mode", "boot_mode")
    body.section("🖼️ AMI INFORMATION", lines)


def _os_section(body: _Body):
    os_name, version = body.value("os"), body.value("os_version")
    lines = []
    if body.record.service == "lightsail":
        blueprint = body.value("blueprint")
        body.field(lines, "💿 Blueprint", "blueprint")
        if is_valid(os_name) and os_name != blueprint:
            lines.append(f"🐧 OS: {os_name}")
        body.field(lines, "📦 Version", "os_version")
    elif is_valid(os_name) and is_valid(version):
        lines.append(f"💿 OS: {os_name} {version}")
    elif is_valid(os_name):
        lines.append(f"💿 OS: {os_name}")
    elif is_valid(version):
        lines.append(f"💿 OS Version: {version}")
    body.section("🖥️ OPERATING SYSTEM", lines)


def _hardware_section(body: _Body):
    if body.record.service != "ec2":
        return
    if not any(is_valid(body.value(k)) for k in ("cpu_core_count", "cpu_threads_per_core", "cpu_options")):
        return
    lines = []
    body.field(lines, "💪 CPU Cores", "cpu_core_count")
    body.field(lines, "🧵 Threads/Core", "cpu_threads_per_core")
    body.field(lines, "⚙️ CPU Options", "cpu_options")
    body.field(lines, "💳 Credit Spec", "credit_specification")
    body.field(lines, "🔒 Nitro Enclave", "nitro_enclave")
    body.field(lines, "💤 Hibernation", "hibernation")
    body.field(lines, "🎮 Elastic GPU", "elastic_gpu_id")
    body.field(lines, "🧠 Elastic Inference", "elastic_inference_accelerator")
    body.section("🔧 CPU & HARDWARE", lines)


def _total_storage(body: _Body, lines: List[str]):
    total = body.value("total_storage_gib")
    if isinstance(total, (int, float)) and total > 0:
        lines.append(f"📊 Total Storage: {total} GiB")


def _storage_section(body: _Body):
    lines = []
    if body.record.service == "lightsail":
        body.field(lines, "📦 System Disk", "system_disk_size")
        body.field(lines, "📂 Mount Path", "system_disk_path")
        body.field(lines, "💽 Storage", "storage")
        _total_storage(body, lines)
        body.field(lines, "📸 Auto Snapshots", "automatic_snapshots")
        disks = body.value("additional_disks") or []
        if disks:
            lines.append(f"📚 Additional Disks: {len(disks)} attached")
    else:
        body.field(lines, "📱 Root Device", "root_device")
        body.field(lines, "📂 Root Device Name", "root_device_name")
        body.field(lines, "💽 Root Device Type", "root_device_type")
        body.field(lines, "💾 EBS Volumes", "ebs")
        body.field(lines, "⚡ EBS Optimized", "ebs_optimized")
        body.field(lines, "⚡ EBS Optimization", "ebs_optimization")
        _total_storage(body, lines)
        devices = body.record.tabs_data.get("storage", {}).get("block_devices") or []
        if devices:
            lines.append("📚 Block Devices:")
            for device in devices:
                size = f"{device['size']} GiB" if device.get("size") else None
                parts = [device.get("device_name"), device.get("volume_id"), size, device.get("volume_type")]
                info = " - ".join(str(p) for p in parts if p)
                if info:
                    lines.append(f"   • {info}")
    body.section("💾 STORAGE CONFIGURATION", lines)


def _network_section(body: _Body):
    record = body.record
    lines = []
    public_ipv4 = body.value("public_ipv4")
    private_ipv4 = body.value("private_ipv4")
    if is_valid(public_ipv4):
        static = " (Static)" if body.value("is_static_ip") is True else ""
        lines.append(f"🌍 Public IPv4: {public_ipv4}{static}")
    if is_valid(private_ipv4) and private_ipv4 != public_ipv4:
        lines.append(f"🏠 Private IPv4: {private_ipv4}")

    if is_valid(body.value("public_ipv6")):
        lines.append(f"🌍 Public IPv6: {body.value('public_ipv6')}")
    elif body.value("ipv6_enabled") is True:
        lines.append("🌐 IPv6: Enabled")
    body.field(lines, "🏠 Private IPv6", "private_ipv6")

    if record.service == "ec2":
        body.field(lines, "🌐 Public DNS", "public_dns")
        body.field(lines, "🌐 Public DNS Name", "public_dns_name")
        body.field(lines, "🏠 Private IP DNS", "private_ip_dns")
        body.field(lines, "🏠 Private DNS Name", "private_dns_name")
        body.field(lines, "📛 Hostname Type", "hostname_type")
        body.field(lines, "📛 Answer Private DNS", "answer_private_dns_name")
        body.field(lines, "📌 Elastic IP", "elastic_ip")
        body.field(lines, "🔄 Auto-Assigned IP", "auto_assigned_ip")
        body.field(lines, "🔗 VPC ID", "vpc_id")
        body.field(lines, "📦 Subnet ID", "subnet_id")

        interfaces = record.tabs_data.get("networking", {}).get("network_interfaces") or []
        if interfaces:
            lines.append(f"🔌 Network Interfaces: {len(interfaces)}")
            for i, interface in enumerate(interfaces, 1):
                if interface.get("eni_id"):
                    lines.append(f"   ENI {i}: {interface['eni_id']}")
                if interface.get("private_ip"):
                    lines.append(f"      Private IP: {interface['private_ip']}")
                if interface.get("public_ip"):
                    lines.append(f"      Public IP: {interface['public_ip']}")
        body.field(lines, "✓ Source/Dest Check", "source_dest_check")
    else:
        body.field(lines, "⚖️ Load Balancing", "load_balancing_status")
        body.field(lines, "📡 Distribution", "distribution_status")
    body.section("🌐 NETWORK CONFIGURATION", lines)


def _iam_section(body: _Body):
    if body.record.service != "ec2":
        return
    if not (is_valid(body.value("iam_role")) or is_valid(body.value("key_pair"))):
        return
    lines = []
    body.field(lines, "👤 IAM Role", "iam_role")
    body.field(lines, "📋 Instance Profile", "iam_instance_profile")
    body.field(lines, "🔑 Key Pair", "key_pair")
    body.section("🔐 IAM & PERMISSIONS", lines)


def _monitoring_section(body: _Body):
    if body.record.service != "ec2":
        return
    keys = ("monitoring", "status_checks", "system_status_check", "instance_status_check")
    if not any(is_valid(body.value(k)) for k in keys):
        return
    lines = []
    body.field(lines, "📈 Monitoring", "monitoring")
    body.field(lines, "✓ Status Checks", "status_checks")
    body.field(lines, "🔧 System Status", "system_status_check")
    body.field(lines, "💻 Instance Status", "instance_status_check")
    body.field(lines, "🚨 Alarms", "alarm_status")
    body.field(lines, "🔄 Auto Recovery", "auto_recovery")
    body.section("📊 MONITORING & STATUS", lines)


def _metadata_section(body: _Body):
    if body.record.service != "ec2":
        return
    if not (is_valid(body.value("imdsv2")) or is_valid(body.value("metadata_accessible"))):
        return
    lines = []
    body.field(lines, "🔒 IMDSv2", "imdsv2")
    body.field(lines, "📋 Metadata", "metadata_accessible")
    body.field(lines, "🎫 HTTP Tokens", "http_tokens")
    body.field(lines, "🔢 Hop Limit", "http_put_response_hop_limit")
    body.section("🔍 METADATA OPTIONS", lines)


def _rule_line(rule: Dict[str, Any]) -> str:
    direction = (rule.get("type") or "unknown").upper()
    port = rule.get("port") or "All"
    protocol = rule.get("protocol") or "All"
    peer = rule.get("source") or rule.get("destination") or "0.0.0.0/0"
    description = rule.get("description")
    suffix = f" - {description}" if is_valid(description) else ""
    return f"   • [{direction}] {protocol} {port} → {peer}{suffix}"


def _security_section(body: _Body):
    lines = []
    if body.record.service == "ec2":
        if is_valid(body.value("security_groups")):
            lines.append(f"🛡️ Security Groups: {body.value('security_groups')}")
            rules = body.value("security_group_rules") or []
            if rules:
                lines.append("🔥 Security Group Rules:")
                lines.extend(_rule_line(rule) for rule in rules)
    else:
        ipv4 = body.value("ipv4_firewall_rules") or []
        ipv6 = body.value("ipv6_firewall_rules") or []
        if ipv4:
            lines.append("🔥 IPv4 Firewall Rules:")
            lines.extend(f"   • {_firewall_line(rule)}" for rule in ipv4)
        if ipv6:
            if lines:
                lines.append("")
            lines.append("🔥 IPv6 Firewall Rules:")
            lines.extend(f"   • {_firewall_line(rule)}" for rule in ipv6)
    body.section("🔒 SECURITY CONFIGURATION", lines)


def _tags_section(body: _Body):
    tags = body.value("tags") or {}
    lines = [f"📌 {key}: {value}" for key, value in tags.items()]
    body.section("🏷️ TAGS", lines)


def _ssh_key_section(body: _Body):
    lines = []
    body.field(lines, "🗝️ Key Name", "ssh_key_name")
    body.section("🔑 SSH KEY", lines)


def ssh_command(record: InstanceRecord) -> Optional[str]:
    address = None
    for key in ("public_ipv4", "public_ipv6"):
        if is_valid(record.get(key)):
            address = record.get(key)
            break
    if not address:
        return None
    if ":" in address:
        address = f"[{address}]"

    user = record.get("ssh_user")
    if not is_valid(user):
        os_name = record.get("os")
        if not is_valid(os_name):
            os_name = record.get("blueprint")
        default = "admin" if record.service == "lightsail" else "ec2-user"
        user = patterns.guess_ssh_user(os_name if is_valid(os_name) else None, default=default)

    key = record.get("key_pair")
    if not is_valid(key):
        key = record.get("ssh_key_name")
    key_file = f"{key}.pem" if is_valid(key) else "your-key.pem"
    return f"ssh -i {key_file} {user}@{address}"


def _quick_access_section(body: _Body, account_info: Dict[str, str]):
    lines = []
    url = console_url(body.record, account_info)
    if url:
        lines.append(f"🖥️ Console: {url}")
    ssh = ssh_command(body.record)
    if ssh:
        lines.append(f"🔐 SSH Access: {ssh}")
    body.section("🔗 QUICK ACCESS", lines)


def format_body(record: InstanceRecord, account_info: Optional[Dict[str, str]] = None, compact: bool = False) -> str:
    """Render the email body. Same record and flag give the same text."""
    account_info = account_info or {}
    body = _Body(record, SEPARATOR_SHORT if compact else SEPARATOR_FULL)

    _account_section(body, account_info)
    _overview_section(body, account_info)
    _ami_section(body)
    _os_section(body)
    _hardware_section(body)
    _storage_section(body)
    _network_section(body)
    _iam_section(body)
    _monitoring_section(body)
    _metadata_section(body)
    _security_section(body)
    _tags_section(body)
    _ssh_key_section(body)
    _quick_access_section(body, account_info)

    return "\n".join(body.out)
