"""
Field extraction over parsed console snapshots.

Every helper here is a pure read over a BeautifulSoup tree. Lookups that
find nothing return None (or the N/A sentinel where a record field is
being filled); nothing in this module raises for a missing element.
"""
import re
from typing import Any, Callable, Iterable, List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.element import PreformattedString

NA = "N/A"

# Placeholder values the console renders for empty fields
EMPTY_MARKERS = ("", "-", "–", "—")
INVALID_VALUES = EMPTY_MARKERS + (NA,)

_SKIP_TEXT_PARENTS = {"script", "style", "noscript", "template"}
_WHITESPACE = re.compile(r"\s+")

Strategy = Callable[..., Optional[str]]


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def clean(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def is_valid(value: Any) -> bool:
    """True if the value holds real data (not None, empty, N/A, or a dash)."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value.strip() not in INVALID_VALUES
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    if isinstance(value, (int, float)):
        return value != 0
    return True


def is_missing(value: Any) -> bool:
    return not is_valid(value)


def present(value: Optional[str]) -> Optional[str]:
    """Return the cleaned value, or None for empty/dash placeholders."""
    value = clean(value)
    if value in EMPTY_MARKERS:
        return None
    return value


def or_na(value: Optional[str]) -> str:
    return value if is_valid(value) else NA


def text_of(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return clean(element.get_text(" "))


def page_text(root) -> str:
    """Visible text of a document, one line per text node."""
    if root is None:
        return ""
    lines = []
    for node in root.find_all(string=True):
        if isinstance(node, PreformattedString) or node.parent is None:
            continue
        if any(p.name in _SKIP_TEXT_PARENTS for p in node.parents if isinstance(p, Tag)):
            continue
        line = clean(str(node))
        if line:
            lines.append(line)
    return "\n".join(lines)


def select_text(root, *selectors: str) -> Optional[str]:
    """Text of the first element matching any selector, in selector order."""
    if root is None:
        return None
    for selector in selectors:
        value = present(text_of(root.select_one(selector)))
        if value:
            return value
    return None


def first_success(strategies: Iterable[Strategy], *args) -> Optional[str]:
    """Run strategies in order; the first non-empty result wins."""
    for strategy in strategies:
        value = present(strategy(*args))
        if value:
            return value
    return None


def search(pattern: "re.Pattern", text: str, group: int = 1) -> Optional[str]:
    match = pattern.search(text or "")
    if not match:
        return None
    return present(match.group(group))


# --- label lookup ---------------------------------------------------------

def _label_elements(root, label: str) -> List[Tag]:
    """Labelled elements for `label`: exact text first, then attribute, then substring."""
    wanted = label.strip().lower()
    exact, by_attr, partial = [], [], []
    for element in root.select('[data-analytics^="label-for-"]'):
        text = text_of(element).lower()
        suffix = element.get("data-analytics", "")[len("label-for-"):].lower()
        if text == wanted:
            exact.append(element)
        elif suffix == wanted:
            by_attr.append(element)
        elif wanted in text:
            partial.append(element)
    return exact + by_attr + partial


def _container(label: Tag) -> Optional[Tag]:
    """Nearest grid/column ancestor of a label element."""
    for parent in label.parents:
        if not isinstance(parent, Tag) or parent.name in ("body", "html", "[document]"):
            break
        classes = " ".join(parent.get("class") or [])
        if "column" in classes or "grid" in classes:
            return parent
    if label.parent is not None and label.parent.parent is not None:
        return label.parent.parent
    return label.parent


def _inside(element: Tag, ancestor: Tag) -> bool:
    return element is ancestor or any(p is ancestor for p in element.parents)


def _copy_value(container: Tag, label: Tag) -> Optional[str]:
    for element in container.select('[class*="text-to-copy"]'):
        if not _inside(element, label):
            return text_of(element)
    return None


def _link_value(container: Tag, label: Tag) -> Optional[str]:
    links = [a for a in container.find_all("a") if not _inside(a, label)]
    return text_of(links[-1]) if links else None


def _sibling_value(container: Tag, label: Tag) -> Optional[str]:
    label_text = text_of(label)
    candidates = []
    for element in container.find_all(["div", "span"]):
        if _inside(element, label) or _inside(label, element):
            continue
        text = text_of(element)
        if text and text != label_text and text not in EMPTY_MARKERS:
            candidates.append(text)
    return candidates[-1] if candidates else None


def _stripped_block(container: Tag, label: Tag) -> Optional[str]:
    block = text_of(container)
    label_text = text_of(label)
    if label_text and block.lower().startswith(label_text.lower()):
        block = block[len(label_text):]
    return block.strip()


CONTAINER_STRATEGIES = (_copy_value, _link_value, _sibling_value, _stripped_block)


def _from_labels(root, label: str) -> Optional[str]:
    for element in _label_elements(root, label):
        container = _container(element)
        if container is None:
            continue
        value = first_success(CONTAINER_STRATEGIES, container, element)
        if value:
            return value
    return None


def _from_definition_list(root, label: str) -> Optional[str]:
    wanted = label.strip().lower()
    for dt in root.find_all("dt"):
        if wanted in text_of(dt).lower():
            dd = dt.find_next_sibling()
            if dd is not None and dd.name == "dd":
                value = present(text_of(dd))
                if value:
                    return value
    return None


FIELD_STRATEGIES = (_from_labels, _from_definition_list)


def extract_field(root, label: str) -> Optional[str]:
    """Best-effort value for a labelled console field, or None."""
    if root is None or not label:
        return None
    return first_success(FIELD_STRATEGIES, root, label)


def extract_any(root, *labels: str) -> Optional[str]:
    """First labelled value found among several label spellings."""
    for label in labels:
        value = extract_field(root, label)
        if value:
            return value
    return None


def copy_to_clipboard_value(root, key: str) -> Optional[str]:
    """Value of a `copy-to-clipboard-<key>` widget."""
    if root is None:
        return None
    return select_text(
        root,
        f'[data-analytics="copy-to-clipboard-{key}"] [class*="text-to-copy"]',
        f'[data-analytics="copy-to-clipboard-{key}"]',
    )
