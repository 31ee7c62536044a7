"""State aggregator for deploywatch.

Owns the canonical snapshot: the ordered deployment list, deployment to
instance membership, the global instance cache and the latest status
summary per instance. All access goes through one reader/writer lock;
callers only ever receive copies or rendered bytes.
"""

import copy
import logging
from typing import Dict, Iterable, List, Optional

from ..dashboard.lines import (
    compact_instance_line,
    deployment_line,
    instance_line,
    lifecycle_event_line,
)
from ..utils.locks import ReadWriteLock
from .dedup import DedupSet
from .models import Deployment, Instance, InstanceSummary


logger = logging.getLogger("deploywatch.state")


class StateAggregator:
    """Merges discovery and status results and renders the dashboard text."""

    def __init__(
        self,
        tracker,
        inventory,
        compact: bool = False,
        hide_succeeded: bool = False,
        success_statuses: Iterable[str] = ("Succeeded",)
    ):
        """Initialize state aggregator.

        Args:
            tracker: Deployment tracking service (CodeDeployClient or compatible)
            inventory: Fleet inventory service (FleetInventoryClient or compatible)
            compact: Render one line per instance instead of per lifecycle event
            hide_succeeded: Skip instances in a success status when rendering
            success_statuses: Status values counted as terminal success
        """
        self.tracker = tracker
        self.inventory = inventory
        self.compact = compact
        self.hide_succeeded = hide_succeeded
        self.success_statuses = frozenset(success_statuses)

        self._deployments: List[Deployment] = []
        self._memberships: Dict[str, DedupSet] = {}
        self._instances: Dict[str, Instance] = {}
        self._summaries: Dict[str, InstanceSummary] = {}
        self._lock = ReadWriteLock()

    def add_deployment(self, deployment_id: str) -> List[str]:
        """Track a deployment and discover any instances not yet tracked.

        Safe to call repeatedly: deployment metadata is fetched once, later
        calls only add newly listed instances. Service calls happen outside
        the lock; the merge itself is exclusive.

        Args:
            deployment_id: CodeDeploy deployment id

        Returns:
            Instance ids newly added to this deployment's membership

        Raises:
            UnknownEntityError: If the deployment does not exist
            TransientServiceError: If a service call fails
        """
        with self._lock.read():
            members = self._memberships.get(deployment_id)
            tracked = set(members.list()) if members is not None else set()
            cached = set(self._instances)

        deployment = None
        if members is None:
            deployment = self.tracker.get_deployment(deployment_id)

        listed = self.tracker.list_deployment_instances(deployment_id)
        new_ids = [iid for iid in dict.fromkeys(listed) if iid and iid not in tracked]

        to_describe = [iid for iid in new_ids if iid not in cached]
        described = self.inventory.describe_instances(to_describe) if to_describe else []

        with self._lock.write():
            if deployment_id not in self._memberships:
                self._deployments.append(deployment)
                self._memberships[deployment_id] = DedupSet()
                logger.info(f"Tracking deployment {deployment_id}")

            for instance in described:
                self._instances[instance.instance_id] = instance

            members = self._memberships[deployment_id]
            # ids unknown to the inventory stay out so every member has an Instance
            added = [
                iid for iid in new_ids
                if iid in self._instances and members.add(iid)
            ]

        if added:
            logger.info(f"Deployment {deployment_id}: {len(added)} new instances")
        return added

    def _merge(self, summary: InstanceSummary) -> bool:
        """Store a summary; caller holds the write lock.

        Returns:
            True if the summary was stored
        """
        instance_id = summary.bare_instance_id
        if instance_id is None:
            logger.debug(f"Ignoring summary with malformed instance id {summary.instance_id!r}")
            return False

        current = self._summaries.get(instance_id)
        if (
            current is not None
            and current.last_updated_at is not None
            and summary.last_updated_at is not None
            and summary.last_updated_at < current.last_updated_at
        ):
            logger.debug(f"Discarding stale summary for {instance_id}")
            return False

        self._summaries[instance_id] = summary
        return True

    def update(self, summary: InstanceSummary) -> bytes:
        """Merge one status summary.

        Args:
            summary: Summary whose instance id is `<prefix>/<instance-id>`

        Returns:
            Rendered snapshot after the merge
        """
        with self._lock.write():
            self._merge(summary)
            return self._render()

    def batch_update(self, summaries: Iterable[InstanceSummary]) -> bytes:
        """Merge several summaries under one lock acquisition.

        Returns:
            Rendered snapshot after all merges
        """
        with self._lock.write():
            for summary in summaries:
                self._merge(summary)
            return self._render()

    def render(self) -> bytes:
        """Render the current snapshot."""
        with self._lock.read():
            return self._render()

    def _is_success(self, summary: Optional[InstanceSummary]) -> bool:
        return summary is not None and summary.status in self.success_statuses

    def _render(self) -> bytes:
        lines = []
        name_width = max(
            (len(instance.name) for instance in self._instances.values()),
            default=0
        )

        for deployment in self._deployments:
            instance_ids = sorted(self._memberships[deployment.deployment_id].list())
            if not instance_ids:
                continue

            num_success = sum(
                1 for iid in instance_ids
                if self._is_success(self._summaries.get(iid))
            )
            lines.append(deployment_line(deployment, num_success, len(instance_ids)))

            for instance_id in instance_ids:
                instance = self._instances[instance_id]
                summary = self._summaries.get(instance_id)

                if self.hide_succeeded and self._is_success(summary):
                    continue

                if self.compact:
                    lines.append(compact_instance_line(instance, summary, name_width))
                else:
                    lines.append(instance_line(instance))
                    if summary is not None:
                        lines.extend(
                            lifecycle_event_line(event)
                            for event in summary.lifecycle_events
                        )

        return "".join(lines).encode("utf-8")

    def is_instance_done(self, instance_id: str) -> bool:
        """True iff the instance has a summary outside Pending/InProgress."""
        with self._lock.read():
            summary = self._summaries.get(instance_id)
            return summary is not None and summary.is_done

    def get_summary(self, instance_id: str) -> Optional[InstanceSummary]:
        """Copy of the latest summary for a bare instance id."""
        with self._lock.read():
            return copy.deepcopy(self._summaries.get(instance_id))

    def deployment_ids(self) -> List[str]:
        """Tracked deployment ids in discovery order."""
        with self._lock.read():
            return [deployment.deployment_id for deployment in self._deployments]

    def instance_ids(self, deployment_id: str) -> List[str]:
        """Sorted instance ids tracked for a deployment ([] if unknown)."""
        with self._lock.read():
            members = self._memberships.get(deployment_id)
            return sorted(members.list()) if members is not None else []
