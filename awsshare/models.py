"""Instance Record: one merged scrape of an EC2 or Lightsail instance."""
from dataclasses import dataclass, field
from typing import Any, Dict

from awsshare.dom import NA

SERVICES = ("ec2", "lightsail")


@dataclass(frozen=True)
class InstanceRecord:
    """Merged view of every tab of one instance.

    ``fields`` holds every key declared by the service's tab extractors;
    unresolved values are N/A (or an empty list/mapping). ``tabs_data``
    keeps each tab's raw partial record as extracted.
    """
    instance_id: str
    service: str
    region: str = ""
    name: str = NA
    fields: Dict[str, Any] = field(default_factory=dict)
    tabs_data: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def get(self, key: str, default: Any = NA) -> Any:
        if key in ("instance_id", "service", "region", "name"):
            return getattr(self, key)
        return self.fields.get(key, default)

    @property
    def state(self) -> str:
        return self.fields.get("state", NA)

    def to_dict(self, include_tabs: bool = True) -> Dict[str, Any]:
        """Flat dict for export: identity first, then fields."""
        data = {
            "instance_id": self.instance_id,
            "service": self.service,
            "region": self.region,
            "name": self.name,
        }
        for key, value in self.fields.items():
            if key not in data:
                data[key] = value
        if include_tabs:
            data["tabs_data"] = self.tabs_data
        return data
