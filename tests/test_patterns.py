import pytest

from awsshare import patterns


class TestClassification:
    """Tests for IPv4/IPv6 public/private classification."""

    @pytest.mark.parametrize("ip,expected", [
        ("10.0.0.5", "private"),
        ("172.31.5.10", "private"),
        ("192.168.1.1", "private"),
        ("127.0.0.1", None),
        ("169.254.169.254", None),
        ("0.0.0.0", None),
        ("34.201.5.9", "public"),
    ])
    def test_classify_ipv4(self, ip, expected):
        assert patterns.classify_ipv4(ip) == expected

    @pytest.mark.parametrize("ip,expected", [
        ("::1", None),
        ("::", None),
        ("fe80::1", "private"),
        ("fd00::abcd", "private"),
        ("2600:1f18:abc::1", "public"),
    ])
    def test_classify_ipv6(self, ip, expected):
        assert patterns.classify_ipv6(ip) == expected


class TestScanners:

    def test_extract_ips_first_of_each_kind(self):
        text = "Private 172.31.5.10 public 34.201.5.9 also 54.1.2.3 and 10.0.0.1"
        ips = patterns.extract_ips(text)
        assert ips["public_ipv4"] == "34.201.5.9"
        assert ips["private_ipv4"] == "172.31.5.10"
        assert ips["public_ipv6"] is None

    def test_scan_ipv4_drops_reserved(self):
        result = patterns.scan_ipv4("127.0.0.1 10.1.1.1 8.8.8.8 10.1.1.1")
        assert result == {"private": ["10.1.1.1"], "public": ["8.8.8.8"]}

    def test_find_ipv6(self):
        found = patterns.find_ipv6("IPv6 2600:1f18:abc:de00::10 and loopback ::1")
        assert found == ["2600:1f18:abc:de00::10"]

    def test_find_ids_unique_in_order(self):
        text = "sg-0b2 sg-0a1 sg-0b2"
        assert patterns.find_ids(patterns.SECURITY_GROUP_ID, text) == ["sg-0b2", "sg-0a1"]

    def test_instance_id_length(self):
        assert patterns.first_id(patterns.INSTANCE_ID, "id i-0abc12345def67890 here") == "i-0abc12345def67890"
        assert patterns.first_id(patterns.INSTANCE_ID, "i-123") is None


class TestSshUser:

    @pytest.mark.parametrize("os_name,expected", [
        ("Ubuntu 22.04", "ubuntu"),
        ("Amazon Linux 2023", "ec2-user"),
        ("CentOS 7", "centos"),
        ("Debian 12", "admin"),
        ("WordPress (Bitnami)", "bitnami"),
        ("SUSE Linux", "ec2-user"),
    ])
    def test_known_os(self, os_name, expected):
        assert patterns.guess_ssh_user(os_name) == expected

    def test_default(self):
        assert patterns.guess_ssh_user(None) == "ec2-user"
        assert patterns.guess_ssh_user("Windows", default="admin") == "admin"
