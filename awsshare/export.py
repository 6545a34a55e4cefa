"""CSV and JSON export of scraped instance records."""
import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from awsshare.models import InstanceRecord

Row = Union[InstanceRecord, Dict[str, Any]]


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten nested mappings into dotted keys.

    Lists of scalars are joined with "; ", lists holding mappings are
    serialized item by item as compact JSON and joined the same way.
    """
    flat = {}
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            if value:
                flat.update(flatten(value, name))
            else:
                flat[name] = ""
        elif isinstance(value, (list, tuple)):
            flat[name] = "; ".join(_scalar(item) for item in value)
        else:
            flat[name] = _scalar(value)
    return flat


def _row(item: Row) -> Dict[str, Any]:
    if isinstance(item, InstanceRecord):
        return item.to_dict(include_tabs=False)
    return {key: value for key, value in item.items() if key != "tabs_data"}


def to_csv(records: List[Row]) -> str:
    """Header is the sorted union of every row's keys; gaps are empty."""
    rows = [flatten(_row(r)) for r in records]
    headers = sorted({key for row in rows for key in row})
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=headers, restval="", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return out.getvalue()


def _json_item(item: Row) -> Dict[str, Any]:
    if isinstance(item, InstanceRecord):
        return item.to_dict(include_tabs=True)
    return item


def build_results(ec2: List[Row], lightsail: List[Row], region: Optional[str] = None,
                  fetched_at: Optional[datetime] = None) -> Dict[str, Any]:
    fetched_at = fetched_at or datetime.now(timezone.utc)
    return {
        "fetched_at": fetched_at.isoformat(),
        "region": region or "default",
        "ec2": [_json_item(r) for r in ec2],
        "lightsail": [_json_item(r) for r in lightsail],
    }


def to_json(results: Dict[str, Any]) -> str:
    return json.dumps(results, indent=2, ensure_ascii=False)


def write_results(path: Union[str, Path], results: Dict[str, Any]) -> Path:
    """Write JSON, or CSV when the path ends in .csv."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".csv":
        content = to_csv(list(results.get("ec2", [])) + list(results.get("lightsail", [])))
    else:
        content = to_json(results)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    return path
