from awsshare.dom import parse_html
from awsshare.tables import (
    TableRole,
    body_rows,
    cell_texts,
    classify_table,
    column_index,
    is_placeholder_row,
    table_headers,
    tables_with_role,
)


def _table(html):
    return parse_html(html).find("table")


class TestClassifyTable:
    """Tests for table role classification."""

    def test_section_hint_wins(self, ec2_docs):
        inbound = tables_with_role(ec2_docs["security"], TableRole.INBOUND)
        outbound = tables_with_role(ec2_docs["security"], TableRole.OUTBOUND)
        assert len(inbound) == 1
        assert len(outbound) == 1

    def test_headers_source_destination(self):
        assert classify_table(_table("<table><tr><th>Port</th><th>Source</th></tr></table>")) == TableRole.INBOUND
        assert classify_table(_table("<table><tr><th>Port</th><th>Destination</th></tr></table>")) == TableRole.OUTBOUND

    def test_headers_block_devices(self):
        table = _table("<table><tr><th>Volume ID</th><th>Device name</th></tr></table>")
        assert classify_table(table) == TableRole.BLOCK_DEVICES

    def test_headers_tags(self, ec2_docs):
        assert classify_table(ec2_docs["tags"].find("table")) == TableRole.TAGS

    def test_firewall_section(self, lightsail_docs):
        table = lightsail_docs["networking"].find("table")
        assert classify_table(table) == TableRole.FIREWALL

    def test_unknown(self):
        assert classify_table(_table("<table><tr><th>Foo</th></tr></table>")) == TableRole.UNKNOWN


class TestRows:

    def test_body_rows_skip_header(self):
        table = _table("<table><tr><th>Key</th><th>Value</th></tr><tr><td>a</td><td>b</td></tr></table>")
        rows = list(body_rows(table))
        assert len(rows) == 1
        assert cell_texts(rows[0]) == ["a", "b"]

    def test_table_headers_lowercase(self, ec2_docs):
        table = ec2_docs["storage"].find("table")
        assert table_headers(table)[:2] == ["volume id", "device name"]

    def test_cell_text_prefers_content_wrapper(self):
        table = _table(
            '<table><tr><td><span class="awsui-table-body-cell-content">22</span>'
            '<span class="sr-only">sort</span></td></tr></table>'
        )
        assert cell_texts(next(body_rows(table))) == ["22"]

    def test_placeholder_row(self):
        assert is_placeholder_row(["No rules found"], minimum=1)
        assert is_placeholder_row(["sgr-1"], minimum=3)
        assert not is_placeholder_row(["sgr-1", "22", "TCP"], minimum=3)

    def test_column_index(self):
        headers = ["security group rule id", "port range", "protocol"]
        assert column_index(headers, "port") == 1
        assert column_index(headers, "missing") is None
