"""Data models for the deploywatch snapshot."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List


PENDING_STATUSES = {"Pending", "InProgress"}


@dataclass
class Deployment:
    """A tracked CodeDeploy rollout."""
    deployment_id: str
    application: str = ""
    group: str = ""
    status: str = ""


@dataclass
class Instance:
    """A compute node targeted by one or more deployments."""
    instance_id: str
    tags: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        """Display name taken from the Name tag."""
        return self.tags.get("Name", "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instance":
        """Create Instance from an EC2 instance description."""
        tags = {
            tag.get("Key", ""): tag.get("Value", "")
            for tag in data.get("Tags", [])
        }
        metadata = {
            key: value
            for key, value in data.items()
            if key not in ("InstanceId", "Tags")
        }
        return cls(
            instance_id=data.get("InstanceId", ""),
            tags=tags,
            metadata=metadata
        )


@dataclass
class LifecycleEvent:
    """One lifecycle hook of an instance deployment."""
    name: str
    status: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def duration_sec(self) -> int:
        """Whole seconds between start and end, 0 if either is missing."""
        if self.start_time is None or self.end_time is None:
            return 0
        return int((self.end_time - self.start_time).total_seconds())


@dataclass
class InstanceSummary:
    """Latest known state of one instance within one deployment.

    `instance_id` is the composite id reported by CodeDeploy
    (`<prefix>/<instance-id>`).
    """
    instance_id: str
    status: str
    deployment_id: str = ""
    lifecycle_events: List[LifecycleEvent] = field(default_factory=list)
    instance_type: Optional[str] = None
    last_updated_at: Optional[datetime] = None

    @property
    def is_done(self) -> bool:
        """True once the instance left Pending/InProgress."""
        return self.status not in PENDING_STATUSES

    @property
    def total_duration_sec(self) -> int:
        """Accumulated duration of all lifecycle events."""
        return sum(event.duration_sec for event in self.lifecycle_events)

    @property
    def bare_instance_id(self) -> Optional[str]:
        """Instance id after the single `/`, None if malformed."""
        parts = self.instance_id.split("/")
        if len(parts) != 2:
            return None
        return parts[1]
