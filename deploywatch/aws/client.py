"""AWS CodeDeploy and EC2 clients for deploywatch.

Hide boto3 pagination and error shapes behind small, typed methods.
Every failure leaves this module as a deploywatch error.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from ..errors import (
    ServiceReportedError,
    TransientServiceError,
    UnknownEntityError,
    error_for_code,
)
from ..state.models import Deployment, Instance, InstanceSummary
from .validators import DeploymentPayload, InstanceSummaryPayload


logger = logging.getLogger("deploywatch.aws")

# EC2 accepts at most 200 values per instance-id filter
MAX_DESCRIBE_INSTANCE_IDS = 200


def partition(items: List[str], size: int) -> List[List[str]]:
    """Split `items` into consecutive chunks of at most `size` elements.

    Args:
        items: Values to split
        size: Maximum chunk length

    Returns:
        List of chunks; empty when `items` is empty or `size` <= 0
    """
    if size <= 0:
        return []
    return [items[i:i + size] for i in range(0, len(items), size)]


def call_aws(method: Callable[..., Dict[str, Any]], **kwargs) -> Dict[str, Any]:
    """Invoke a boto3 client method and translate its failures.

    Args:
        method: Bound boto3 client method
        **kwargs: Request parameters

    Returns:
        Response dictionary

    Raises:
        UnknownEntityError: If AWS reports the entity does not exist
        TransientServiceError: For every other AWS or transport failure
    """
    try:
        return method(**kwargs)
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        raise error_for_code(code)(str(e)) from e
    except BotoCoreError as e:
        raise TransientServiceError(str(e)) from e


def create_session(region: Optional[str] = None, profile: Optional[str] = None) -> boto3.Session:
    """Create a boto3 session honouring shared config files.

    Args:
        region: AWS region (default: resolved by boto3)
        profile: Named profile (default: resolved by boto3)

    Returns:
        boto3 Session
    """
    kwargs = {}
    if region:
        kwargs["region_name"] = region
    if profile:
        kwargs["profile_name"] = profile
    return boto3.Session(**kwargs)


class CodeDeployClient:
    """Deployment tracking service backed by AWS CodeDeploy."""

    def __init__(self, client=None, session: Optional[boto3.Session] = None):
        """Initialize CodeDeploy client.

        Args:
            client: Pre-built boto3 `codedeploy` client (tests inject a stubbed one)
            session: boto3 Session used when `client` is not given
        """
        self._client = client or (session or boto3.Session()).client("codedeploy")
        logger.info("CodeDeploy client initialized")

    def list_deployments(
        self,
        application: Optional[str] = None,
        group: Optional[str] = None,
        statuses: Optional[List[str]] = None
    ) -> List[str]:
        """List deployment ids matching the filters, following nextToken.

        Args:
            application: Application name filter
            group: Deployment group filter (requires `application`)
            statuses: Only include deployments in these statuses

        Returns:
            Deployment ids
        """
        params: Dict[str, Any] = {}
        if application:
            params["applicationName"] = application
        if group:
            params["deploymentGroupName"] = group
        if statuses:
            params["includeOnlyStatuses"] = list(statuses)

        deployment_ids: List[str] = []
        while True:
            response = call_aws(self._client.list_deployments, **params)
            deployment_ids.extend(response.get("deployments", []))

            next_token = response.get("nextToken")
            if not next_token:
                break
            params["nextToken"] = next_token

        logger.debug(f"Listed {len(deployment_ids)} deployments for {application}/{group}")
        return deployment_ids

    def get_deployment(self, deployment_id: str) -> Deployment:
        """Get deployment metadata.

        Args:
            deployment_id: CodeDeploy deployment id

        Returns:
            Deployment

        Raises:
            UnknownEntityError: If the deployment does not exist
        """
        response = call_aws(self._client.get_deployment, deploymentId=deployment_id)
        info = response.get("deploymentInfo")
        if not info:
            raise UnknownEntityError(f"Deployment {deployment_id} not found")

        try:
            return DeploymentPayload(**info).to_model()
        except ValidationError as e:
            raise ServiceReportedError(f"Invalid deployment response: {e}") from e

    def list_deployment_instances(self, deployment_id: str) -> List[str]:
        """List instance ids targeted by a deployment, following nextToken.

        Args:
            deployment_id: CodeDeploy deployment id

        Returns:
            Bare EC2 instance ids
        """
        params: Dict[str, Any] = {"deploymentId": deployment_id}
        instance_ids: List[str] = []

        while True:
            response = call_aws(self._client.list_deployment_instances, **params)
            instance_ids.extend(response.get("instancesList", []))

            next_token = response.get("nextToken")
            if not next_token:
                break
            params["nextToken"] = next_token

        return instance_ids

    def get_instance_status(self, deployment_id: str, instance_id: str) -> InstanceSummary:
        """Get the status summary of one instance in a deployment.

        Args:
            deployment_id: CodeDeploy deployment id
            instance_id: Bare EC2 instance id

        Returns:
            InstanceSummary (its `instance_id` is the composite id)
        """
        response = call_aws(
            self._client.get_deployment_instance,
            deploymentId=deployment_id,
            instanceId=instance_id
        )

        try:
            return InstanceSummaryPayload(**response.get("instanceSummary", {})).to_model()
        except ValidationError as e:
            raise ServiceReportedError(f"Invalid instance summary: {e}") from e

    def batch_get_instance_status(
        self,
        deployment_id: str,
        instance_ids: List[str]
    ) -> List[InstanceSummary]:
        """Get status summaries for several instances in one call.

        Args:
            deployment_id: CodeDeploy deployment id
            instance_ids: Bare EC2 instance ids

        Returns:
            List of InstanceSummary

        Raises:
            ServiceReportedError: If the response carries an errorMessage
        """
        if not instance_ids:
            return []

        response = call_aws(
            self._client.batch_get_deployment_instances,
            deploymentId=deployment_id,
            instanceIds=list(instance_ids)
        )

        error_message = (response.get("errorMessage") or "").strip()
        if error_message:
            raise ServiceReportedError(error_message)

        try:
            return [
                InstanceSummaryPayload(**summary).to_model()
                for summary in response.get("instancesSummary", [])
            ]
        except ValidationError as e:
            raise ServiceReportedError(f"Invalid instance summary: {e}") from e


class FleetInventoryClient:
    """Fleet inventory service backed by EC2 DescribeInstances."""

    def __init__(
        self,
        client=None,
        session: Optional[boto3.Session] = None,
        page_size: int = MAX_DESCRIBE_INSTANCE_IDS
    ):
        """Initialize EC2 inventory client.

        Args:
            client: Pre-built boto3 `ec2` client
            session: boto3 Session used when `client` is not given
            page_size: Instance ids per request, capped at 200
        """
        self._client = client or (session or boto3.Session()).client("ec2")
        self.page_size = min(page_size, MAX_DESCRIBE_INSTANCE_IDS)
        logger.info("EC2 inventory client initialized")

    def describe_instances(self, instance_ids: List[str]) -> List[Instance]:
        """Describe instances in pages of at most `page_size` ids.

        Args:
            instance_ids: Bare EC2 instance ids

        Returns:
            Instances found; ids unknown to EC2 are simply absent
        """
        instances: List[Instance] = []

        for chunk in partition(list(instance_ids), self.page_size):
            params: Dict[str, Any] = {
                "Filters": [{"Name": "instance-id", "Values": chunk}]
            }
            while True:
                response = call_aws(self._client.describe_instances, **params)
                for reservation in response.get("Reservations", []):
                    instances.extend(
                        Instance.from_dict(data)
                        for data in reservation.get("Instances", [])
                    )

                next_token = response.get("NextToken")
                if not next_token:
                    break
                params["NextToken"] = next_token

        logger.debug(f"Described {len(instances)} of {len(instance_ids)} instances")
        return instances

