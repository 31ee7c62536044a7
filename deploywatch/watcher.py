"""Discovery and status-check jobs feeding the dashboard.

The watcher registers:
- one discovery job listing deployments (by filter and seed ids) and
  feeding them to the aggregator
- status jobs, either one per deployment (batch mode) or one per
  instance (instance mode), whose cadence follows the shared backoff
- the dashboard consumer forwarding changed renderings to the sink
"""

import logging
from typing import Callable, Dict, List, Optional

from .aws.client import partition
from .config import Config
from .scheduler.checker import TaskScheduler
from .state.aggregator import StateAggregator
from .state.dedup import DedupSet
from .utils.backoff import BackoffController
from .utils.decorators import guard_job


logger = logging.getLogger("deploywatch.watcher")


class DeploymentWatcher:
    """Polls CodeDeploy for a set of deployments and publishes renderings."""

    def __init__(
        self,
        config: Config,
        tracker,
        inventory,
        scheduler: Optional[TaskScheduler] = None,
        aggregator: Optional[StateAggregator] = None
    ):
        """Initialize deployment watcher.

        Args:
            config: Validated configuration
            tracker: Deployment tracking service (CodeDeployClient or compatible)
            inventory: Fleet inventory service (FleetInventoryClient or compatible)
            scheduler: Scheduler to register jobs with (creates new if None)
            aggregator: Snapshot owner (creates one from `config.display` if None)
        """
        self.config = config
        self.tracker = tracker
        self.inventory = inventory
        self.scheduler = scheduler or TaskScheduler()
        self.aggregator = aggregator or StateAggregator(
            tracker,
            inventory,
            compact=config.display.compact,
            hide_succeeded=config.display.hide_succeeded,
            success_statuses=config.display.success_statuses,
        )
        self.backoff = BackoffController(
            floor=config.polling.status_interval_sec,
            delta=config.polling.backoff_delta,
        )
        self.channel = self.scheduler.create_channel()

        self._watched = DedupSet(config.filters.deployment_ids)
        self._done: Dict[str, DedupSet] = {}

        # every job runs behind the polling error policy
        self.list_deployments = guard_job(logger, self.backoff)(self._list_deployments)
        self.discover_deployment = guard_job(logger, self.backoff)(self._discover_deployment)
        self.check_deployment = guard_job(logger, self.backoff)(self._check_deployment)
        self.check_instance = guard_job(logger, self.backoff)(self._check_instance)

    def start(self, sink: Callable[[bytes], None]):
        """Start the dashboard consumer and the discovery job.

        Args:
            sink: Receives each distinct rendering
        """
        self.scheduler.register_dedup_consumer(self.channel, sink)
        self.scheduler.register(
            self.config.polling.discovery_interval_sec,
            self.discover,
            name="discovery"
        )
        logger.info(
            f"Watching {len(self._watched)} deployments "
            f"(application={self.config.filters.application}, mode={self.config.polling.status_mode})"
        )

    def stop(self):
        """Signal all jobs to stop."""
        self.scheduler.shutdown()

    def publish(self, payload: bytes) -> bool:
        """Hand a rendering to the dashboard consumer (blocks until taken)."""
        return self.channel.put(payload)

    def watched_deployment_ids(self) -> List[str]:
        """Deployment ids the discovery job polls."""
        return self._watched.list()

    def discover(self):
        """One discovery pass: find deployments, then new instances."""
        filters = self.config.filters
        if filters.application:
            for group in filters.groups or [None]:
                found = self.list_deployments(filters.application, group) or []
                for deployment_id in found:
                    if self._watched.add(deployment_id):
                        logger.info(f"Discovered deployment {deployment_id}")

        for deployment_id in self._watched.list():
            self.discover_deployment(deployment_id)

    def _list_deployments(self, application: str, group: Optional[str]) -> List[str]:
        return self.tracker.list_deployments(
            application=application,
            group=group,
            statuses=self.config.filters.statuses
        )

    def _discover_deployment(self, deployment_id: str):
        added = self.aggregator.add_deployment(deployment_id)
        self._schedule_status_checks(deployment_id, added)
        if added:
            self.publish(self.aggregator.render())

    def _pending_instances(self, deployment_id: str) -> List[str]:
        tracked = DedupSet(self.aggregator.instance_ids(deployment_id))
        done = self._done.setdefault(deployment_id, DedupSet())
        return tracked.difference(done)

    def _schedule_status_checks(self, deployment_id: str, added: List[str]):
        interval = self.backoff.sleep

        if self.config.polling.status_mode == "instance":
            for instance_id in added:
                self.scheduler.register_keyed(interval, (deployment_id, instance_id), self.check_instance)
            return

        if self._pending_instances(deployment_id):
            self.scheduler.register_keyed(interval, (deployment_id,), self.check_deployment)

    def _check_deployment(self, deployment_id: str):
        pending = self._pending_instances(deployment_id)
        if not pending:
            # discovery re-registers the job if new instances show up
            self.scheduler.cancel((deployment_id,))
            return

        summaries = []
        for chunk in partition(pending, self.config.polling.batch_size):
            summaries.extend(self.tracker.batch_get_instance_status(deployment_id, chunk))

        self.publish(self.aggregator.batch_update(summaries))

        done = self._done[deployment_id]
        for instance_id in pending:
            if self.aggregator.is_instance_done(instance_id):
                done.add(instance_id)

    def _check_instance(self, deployment_id: str, instance_id: str):
        # summaries are shared across deployments; only this deployment's result ends the job
        known = self.aggregator.get_summary(instance_id)
        if known is not None and known.deployment_id == deployment_id and known.is_done:
            self.scheduler.cancel((deployment_id, instance_id))
            return

        summary = self.tracker.get_instance_status(deployment_id, instance_id)
        self.publish(self.aggregator.update(summary))

        if self.aggregator.is_instance_done(instance_id):
            logger.info(f"Instance {instance_id} finished in {deployment_id}")
            self.scheduler.cancel((deployment_id, instance_id))
