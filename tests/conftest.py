"""Shared fixtures and in-memory collaborators for deploywatch tests."""

from datetime import datetime, timedelta, timezone

import pytest

from deploywatch.errors import TransientServiceError, UnknownEntityError
from deploywatch.state.models import Deployment, Instance, InstanceSummary, LifecycleEvent


BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_summary(instance_id, status, deployment_id='d-1', events=None, updated=None, instance_type=None):
    """Build an InstanceSummary with a composite `<prefix>/<id>` instance id."""
    return InstanceSummary(
        instance_id=f'arn:aws:ec2:us-east-1:123456789012:instance/{instance_id}',
        status=status,
        deployment_id=deployment_id,
        lifecycle_events=events or [],
        instance_type=instance_type,
        last_updated_at=updated,
    )


def make_event(name, status, seconds):
    """Build a lifecycle event lasting `seconds`."""
    return LifecycleEvent(
        name=name,
        status=status,
        start_time=BASE_TIME,
        end_time=BASE_TIME + timedelta(seconds=seconds),
    )


class FakeTracker:
    """In-memory deployment tracking service."""

    def __init__(self):
        self.deployments = {}
        self.instances = {}
        self.statuses = {}
        self.listed = {}
        self.fail = False
        self.calls = []

    def add(self, deployment_id, instance_ids, application='app', group='web'):
        self.deployments[deployment_id] = Deployment(deployment_id, application, group, 'InProgress')
        self.instances[deployment_id] = list(instance_ids)

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail:
            raise TransientServiceError(f'{name} failed')

    def list_deployments(self, application=None, group=None, statuses=None):
        self._record('list_deployments', application, group)
        return list(self.listed.get((application, group), []))

    def get_deployment(self, deployment_id):
        self._record('get_deployment', deployment_id)
        if deployment_id not in self.deployments:
            raise UnknownEntityError(f'Deployment {deployment_id} not found')
        return self.deployments[deployment_id]

    def list_deployment_instances(self, deployment_id):
        self._record('list_deployment_instances', deployment_id)
        if deployment_id not in self.instances:
            raise UnknownEntityError(f'Deployment {deployment_id} not found')
        return list(self.instances[deployment_id])

    def get_instance_status(self, deployment_id, instance_id):
        self._record('get_instance_status', deployment_id, instance_id)
        return self.statuses.get(instance_id) or make_summary(instance_id, 'Pending', deployment_id)

    def batch_get_instance_status(self, deployment_id, instance_ids):
        self._record('batch_get_instance_status', deployment_id, tuple(instance_ids))
        return [
            self.statuses.get(iid) or make_summary(iid, 'Pending', deployment_id)
            for iid in instance_ids
        ]

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


class FakeInventory:
    """In-memory fleet inventory service."""

    def __init__(self, names=None):
        self.names = dict(names or {})
        self.requests = []

    def describe_instances(self, instance_ids):
        self.requests.append(list(instance_ids))
        return [
            Instance(instance_id=iid, tags={'Name': self.names[iid]})
            for iid in instance_ids
            if iid in self.names
        ]


@pytest.fixture
def tracker():
    """Create an empty fake tracker."""
    return FakeTracker()


@pytest.fixture
def inventory():
    """Create a fake inventory knowing three web instances."""
    return FakeInventory({'i-1': 'web-1', 'i-2': 'web-2', 'i-3': 'web-three'})
