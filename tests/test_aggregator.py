import asyncio

import pytest

from conftest import EC2_TABS_HTML, EC2_URL, LIGHTSAIL_URL, FakePage

from awsshare.aggregator import EXTRACTORS, aggregate, declared_fields, detect_service, scrape_instance
from awsshare.dom import NA
from awsshare.errors import ExtractionError
from awsshare.tabs import ACTIVATE_TAB_FN, Settle


class TestDetectService:

    @pytest.mark.parametrize("url,expected", [
        (EC2_URL, "ec2"),
        ("https://console.aws.amazon.com/ec2/v2/home#/instances/i-0123456789abcdef0", "ec2"),
        ("https://console.aws.amazon.com/ec2/home#Instances:", None),
        (LIGHTSAIL_URL, "lightsail"),
        ("https://console.aws.amazon.com/s3/home", None),
        ("", None),
    ])
    def test_detect(self, url, expected):
        assert detect_service(url) == expected


class TestAggregate:
    """Tests for merging per-tab partial records."""

    def test_name_from_name_tag(self):
        record = aggregate("ec2", {
            "details": {"instance_id": "i-0abc12345def67890", "instance_type": "t3.micro", "state": "running"},
            "tags": {"tags": {"Name": "web-1"}},
        })
        assert record.name == "web-1"
        assert record.instance_id == "i-0abc12345def67890"
        assert record.get("instance_type") == "t3.micro"

    def test_every_declared_field_present(self):
        record = aggregate("ec2", {"details": {"instance_id": "i-0abc12345def67890"}})
        assert set(declared_fields("ec2")) <= set(record.fields)
        assert record.get("elastic_gpu_id") == NA
        assert record.get("block_devices") == []

    def test_later_tab_fills_missing_field(self):
        record = aggregate("ec2", {
            "details": {"instance_id": "i-0abc12345def67890", "vpc_id": NA},
            "networking": {"vpc_id": "vpc-123"},
        })
        assert record.get("vpc_id") == "vpc-123"

    def test_base_tab_value_kept(self):
        record = aggregate("ec2", {
            "details": {"instance_id": "i-0abc12345def67890", "vpc_id": "vpc-999"},
            "networking": {"vpc_id": "vpc-123"},
        })
        assert record.get("vpc_id") == "vpc-999"

    def test_security_tab_groups_override(self):
        record = aggregate("ec2", {
            "details": {"instance_id": "i-0abc12345def67890", "security_groups": "sg-1"},
            "security": {"security_groups": "sg-1 (web)"},
        })
        assert record.get("security_groups") == "sg-1 (web)"

    def test_rules_concatenated(self):
        inbound = [{"type": "inbound", "port": "22"}]
        outbound = [{"type": "outbound", "port": "All"}]
        record = aggregate("ec2", {
            "details": {"instance_id": "i-0abc12345def67890"},
            "security": {"inbound_rules": inbound, "outbound_rules": outbound},
        })
        assert record.get("security_group_rules") == inbound + outbound

    def test_missing_identifier_raises(self):
        with pytest.raises(ExtractionError):
            aggregate("ec2", {"details": {"instance_type": "t3.micro"}, "tags": {}})

    def test_unknown_service(self):
        with pytest.raises(ValueError):
            aggregate("rds", {})

    def test_lightsail_identity_and_firewall(self):
        record = aggregate("lightsail", {
            "connect": {"instance_name": "box", "name": "box"},
            "networking": {"ipv4_firewall_rules": [
                {"application": "SSH", "protocol": "TCP", "port_range": "22", "restricted_to": "Any IPv4 address"}
            ]},
        }, region="eu-west-1")
        assert record.instance_id == "box"
        assert record.region == "eu-west-1"
        assert record.get("firewall_rules") == [
            "=== IPv4 Firewall Rules ===",
            "SSH (TCP 22) - Any IPv4 address",
        ]

    def test_tabs_data_kept(self):
        partials = {"details": {"instance_id": "i-0abc12345def67890"}, "tags": {"tags": {"env": "prod"}}}
        record = aggregate("ec2", partials)
        assert record.tabs_data == partials
        assert record.tabs_data is not partials


class SwitchFailsPage(FakePage):
    """Raises when asked to switch to one named tab."""

    def __init__(self, tabs, url, failing_tab):
        super().__init__(tabs, url)
        self.failing_tab = failing_tab

    async def evaluate(self, script):
        if ACTIVATE_TAB_FN in script and f'"{self.failing_tab}"' in script:
            raise RuntimeError("Execution context was destroyed")
        return await super().evaluate(script)


class TestScrapeInstance:

    def test_ec2_all_tabs(self, ec2_page):
        record = asyncio.run(scrape_instance(ec2_page, "ec2", Settle.immediate()))
        assert ec2_page.clicked == ["security", "networking", "storage", "tags"]
        assert record.instance_id == "i-0abc12345def67890"
        assert record.name == "web-1"
        assert record.region == "us-east-1"
        assert record.state == "running"
        assert record.get("security_groups") == "sg-0123abcd (launch-wizard-1)"
        assert len(record.get("security_group_rules")) == 3
        assert record.get("total_storage_gib") == 108
        assert record.get("tags") == {"Name": "web-1", "env": "prod"}
        assert record.get("iam_role") == "web-role"

    def test_missing_tab_contributes_empty_partial(self):
        tabs = {name: html for name, html in EC2_TABS_HTML.items() if name != "storage"}
        page = FakePage(tabs, EC2_URL)
        record = asyncio.run(scrape_instance(page, "ec2", Settle.immediate()))
        assert record.tabs_data["storage"] == {}
        assert record.get("total_storage_gib") == 0
        assert record.get("block_devices") == []

    def test_failing_tab_switch_contributes_empty_partial(self):
        page = SwitchFailsPage(EC2_TABS_HTML, EC2_URL, failing_tab="storage")
        record = asyncio.run(scrape_instance(page, "ec2", Settle.immediate()))
        assert record.instance_id == "i-0abc12345def67890"
        assert record.tabs_data["storage"] == {}
        assert record.get("block_devices") == []
        assert record.get("tags") == {"Name": "web-1", "env": "prod"}

    def test_failing_base_tab_switch_still_extracts_shown_page(self):
        page = SwitchFailsPage(EC2_TABS_HTML, EC2_URL, failing_tab="details")
        record = asyncio.run(scrape_instance(page, "ec2", Settle.immediate()))
        assert record.instance_id == "i-0abc12345def67890"
        assert record.state == "running"

    def test_raising_extractor_contributes_empty_partial(self, ec2_page, monkeypatch):
        def broken(doc, url):
            raise ValueError("unexpected layout")

        monkeypatch.setitem(EXTRACTORS["ec2"], "storage", broken)
        record = asyncio.run(scrape_instance(ec2_page, "ec2", Settle.immediate()))
        assert record.instance_id == "i-0abc12345def67890"
        assert record.tabs_data["storage"] == {}
        assert record.get("total_storage_gib") == 0
        assert record.get("iam_role") == "web-role"

    def test_lightsail_all_tabs(self, lightsail_page):
        record = asyncio.run(scrape_instance(lightsail_page, "lightsail", Settle.immediate()))
        assert record.instance_id == "my-wordpress"
        assert record.region == "us-east-1"
        assert record.get("static_ip_name") == "StaticIp-1"
        assert record.get("total_storage_gib") == 92
        assert record.get("domains_status") == "No domains configured"
        assert record.get("firewall_rules") == [
            "=== IPv4 Firewall Rules ===",
            "SSH (TCP 22) - Any IPv4 address",
            "Custom (TCP 50100-50500) - Any IPv4 address",
        ]

    def test_no_identifier_raises(self):
        page = FakePage({"details": "<html><body><p>loading</p></body></html>"},
                        "https://console.aws.amazon.com/ec2/home#Instances:")
        with pytest.raises(ExtractionError):
            asyncio.run(scrape_instance(page, "ec2", Settle.immediate()))
