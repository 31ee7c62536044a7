"""Pydantic validators for CodeDeploy and EC2 responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..state.models import Deployment, InstanceSummary, LifecycleEvent


class LifecycleEventPayload(BaseModel):
    """lifecycleEvents[] element of an instance summary."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., alias="lifecycleEventName")
    status: str = Field(default="Pending", description="Lifecycle event status")
    start_time: Optional[datetime] = Field(None, alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")

    def to_model(self) -> LifecycleEvent:
        return LifecycleEvent(
            name=self.name,
            status=self.status,
            start_time=self.start_time,
            end_time=self.end_time
        )


class InstanceSummaryPayload(BaseModel):
    """CodeDeploy InstanceSummary response."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    deployment_id: str = Field(default="", alias="deploymentId")
    instance_id: str = Field(..., alias="instanceId")
    status: str = Field(default="Unknown", description="Instance status")
    last_updated_at: Optional[datetime] = Field(None, alias="lastUpdatedAt")
    lifecycle_events: List[LifecycleEventPayload] = Field(
        default_factory=list,
        alias="lifecycleEvents"
    )
    instance_type: Optional[str] = Field(None, alias="instanceType")

    @field_validator('instance_id')
    @classmethod
    def validate_instance_id(cls, v: str) -> str:
        """Reject empty instance ids."""
        if not v.strip():
            raise ValueError("instanceId must not be empty")
        return v

    def to_model(self) -> InstanceSummary:
        return InstanceSummary(
            instance_id=self.instance_id,
            status=self.status,
            deployment_id=self.deployment_id,
            lifecycle_events=[event.to_model() for event in self.lifecycle_events],
            instance_type=self.instance_type,
            last_updated_at=self.last_updated_at
        )


class DeploymentPayload(BaseModel):
    """CodeDeploy deploymentInfo response."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    deployment_id: str = Field(..., alias="deploymentId")
    application: str = Field(default="", alias="applicationName")
    group: str = Field(default="", alias="deploymentGroupName")
    status: str = Field(default="", description="Deployment status")

    def to_model(self) -> Deployment:
        return Deployment(
            deployment_id=self.deployment_id,
            application=self.application,
            group=self.group,
            status=self.status
        )
