"""
Table helpers: role classification and row iteration.

The console renders rules, block devices, tags and firewall entries as
plain tables. Which one a table is gets decided here, once, from its
header text and the data attributes of its enclosing sections.
"""
from enum import Enum
from typing import Iterator, List, Optional, Sequence

from bs4 import Tag

from awsshare.dom import text_of


class TableRole(Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"
    BLOCK_DEVICES = "block_devices"
    TAGS = "tags"
    FIREWALL = "firewall"
    UNKNOWN = "unknown"


# Section markers on ancestor data attributes/classes, most specific first
_SECTION_HINTS = (
    ("inbound-rules", TableRole.INBOUND),
    ("outbound-rules", TableRole.OUTBOUND),
    ("firewallsection", TableRole.FIREWALL),
    ("block-devices", TableRole.BLOCK_DEVICES),
    ("tags-table", TableRole.TAGS),
)

_HINT_ATTRS = ("data-analytics", "data-testid", "class")


def _section_role(table: Tag) -> Optional[TableRole]:
    for parent in [table] + list(table.parents):
        if not isinstance(parent, Tag):
            continue
        markers = []
        for attr in _HINT_ATTRS:
            value = parent.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
            if value:
                markers.append(value.lower())
        joined = " ".join(markers)
        for hint, role in _SECTION_HINTS:
            if hint in joined:
                return role
    return None


def _cells(row: Tag) -> List[Tag]:
    return row.find_all(["td", "th"], recursive=False) or row.find_all(["td", "th"])


def header_row(table: Tag) -> Optional[Tag]:
    head = table.find("thead")
    if head is not None:
        row = head.find("tr")
        if row is not None:
            return row
    first = table.find("tr")
    if first is not None and first.find("th") is not None:
        return first
    return None


def table_headers(table: Tag) -> List[str]:
    """Lower-cased header texts, in column order."""
    row = header_row(table)
    if row is None:
        return []
    return [text_of(cell).lower() for cell in _cells(row)]


def classify_table(table: Tag) -> TableRole:
    role = _section_role(table)
    if role is not None:
        return role

    headers = table_headers(table)
    if any("source" in h for h in headers):
        return TableRole.INBOUND
    if any("destination" in h for h in headers):
        return TableRole.OUTBOUND
    if any("application" in h for h in headers):
        return TableRole.FIREWALL
    if any("device" in h or "volume" in h or "size" in h for h in headers):
        return TableRole.BLOCK_DEVICES
    if any(h == "key" for h in headers) and any(h == "value" for h in headers):
        return TableRole.TAGS
    return TableRole.UNKNOWN


def tables_with_role(root, *roles: TableRole) -> List[Tag]:
    if root is None:
        return []
    return [t for t in root.find_all("table") if classify_table(t) in roles]


def body_rows(table: Tag) -> Iterator[Tag]:
    """Data rows: tbody rows if present, else every row except a header row."""
    header = header_row(table)
    bodies = table.find_all("tbody")
    rows = [r for body in bodies for r in body.find_all("tr")] if bodies else table.find_all("tr")
    for row in rows:
        if row is header:
            continue
        if row.find("td") is None:
            continue
        yield row


def cell_text(cell: Tag) -> str:
    """Text of a cell, preferring the console's inner content wrapper."""
    inner = cell.select_one('[class*="body-cell-content"]')
    return text_of(inner if inner is not None else cell)


def cell_texts(row: Tag) -> List[str]:
    return [cell_text(cell) for cell in row.find_all("td")]


def is_placeholder_row(cells: Sequence[str], minimum: int = 1) -> bool:
    """A 'No rules found' style row, or a row too short to hold data."""
    if len(cells) < minimum:
        return True
    return "no " in cells[0].lower()


def column_index(headers: Sequence[str], *needles: str) -> Optional[int]:
    """Index of the first header containing any needle."""
    for i, header in enumerate(headers):
        if any(needle in header for needle in needles):
            return i
    return None


def cell_at(cells: Sequence[str], index: Optional[int], default: str = "") -> str:
    if index is None or index >= len(cells):
        return default
    return cells[index]
