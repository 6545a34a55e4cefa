import pytest

from awsshare.dom import (
    NA,
    copy_to_clipboard_value,
    extract_any,
    extract_field,
    is_valid,
    page_text,
    parse_html,
    present,
    select_text,
)


class TestValidity:
    """Tests for the N/A / placeholder checks."""

    @pytest.mark.parametrize("value", [None, "", "  ", "-", "–", "—", NA, [], {}, 0, False])
    def test_invalid_values(self, value):
        assert not is_valid(value)

    @pytest.mark.parametrize("value", ["t3.micro", "0", ["x"], {"Name": "a"}, 8, True])
    def test_valid_values(self, value):
        assert is_valid(value)

    def test_present_strips_placeholders(self):
        assert present("  -  ") is None
        assert present("  web   server ") == "web server"


class TestExtractField:
    """Tests for labelled field lookup."""

    def test_sibling_value(self, ec2_docs):
        assert extract_field(ec2_docs["details"], "Instance type") == "t3.micro"

    def test_copy_value_preferred(self, ec2_docs):
        assert extract_field(ec2_docs["details"], "Instance ID") == "i-0abc12345def67890"

    def test_link_value(self, ec2_docs):
        assert extract_field(ec2_docs["details"], "VPC ID") == "vpc-0a1b2c3d"

    def test_absent_label_returns_none(self, ec2_docs):
        assert extract_field(ec2_docs["details"], "Elastic GPU ID") is None

    def test_dash_value_returns_none(self, ec2_docs):
        assert extract_field(ec2_docs["details"], "Tenancy") is None

    def test_label_is_case_insensitive(self, ec2_docs):
        assert extract_field(ec2_docs["details"], "instance TYPE") == "t3.micro"

    def test_exact_label_wins_over_partial(self):
        doc = parse_html(
            '<div class="column"><div data-analytics="label-for-Platform details">Platform details</div>'
            "<div>Linux/UNIX</div></div>"
            '<div class="column"><div data-analytics="label-for-Platform">Platform</div>'
            "<div>Ubuntu</div></div>"
        )
        assert extract_field(doc, "Platform") == "Ubuntu"

    def test_attribute_suffix_match(self):
        doc = parse_html(
            '<div class="column"><div data-analytics="label-for-root-device-name">Root device</div>'
            "<div>/dev/xvda</div></div>"
        )
        assert extract_field(doc, "root-device-name") == "/dev/xvda"

    def test_definition_list_fallback(self):
        doc = parse_html("<dl><dt>Launch time</dt><dd>2024-01-01</dd></dl>")
        assert extract_field(doc, "Launch time") == "2024-01-01"

    def test_none_root(self):
        assert extract_field(None, "Instance ID") is None

    def test_extract_any_tries_labels_in_order(self, ec2_docs):
        assert extract_any(ec2_docs["details"], "Key pair name", "Key pair assigned at launch") == "web-key"


class TestTextHelpers:

    def test_page_text_skips_scripts(self):
        doc = parse_html("<div>one</div><script>var x = 1;</script><p> two </p>")
        assert page_text(doc) == "one\ntwo"

    def test_select_text_selector_order(self):
        doc = parse_html('<span class="a">-</span><span class="b">value</span>')
        assert select_text(doc, ".a", ".b") == "value"
        assert select_text(doc, ".missing") is None

    def test_copy_to_clipboard_value(self, ec2_docs):
        assert copy_to_clipboard_value(ec2_docs["networking"], "vpc-id") == "vpc-0a1b2c3d"
        assert copy_to_clipboard_value(ec2_docs["networking"], "subnet-id") is None
