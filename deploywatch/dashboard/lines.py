"""Line builders for the deploywatch dashboard.

Lines carry rich console markup for colour; the dashboard turns them into
rich Text when displaying.
"""

from typing import Optional, TYPE_CHECKING

from rich.markup import escape

if TYPE_CHECKING:
    from ..state.models import Deployment, Instance, InstanceSummary, LifecycleEvent


# Status to colour mapping
STATUS_COLORS = {
    'Pending': 'yellow',
    'InProgress': 'blue',
    'Succeeded': 'green',
    'Ready': 'blue',
    'Failed': 'red',
    'Skipped': 'yellow',
}

# Blue/green instance roles
INSTANCE_TYPE_LABELS = {
    'blue': 'original',
    'green': 'replacement',
}


def colored(text: str, color: str) -> str:
    """Wrap escaped text in rich colour markup."""
    return f"[{color}]{escape(text)}[/{color}]"


def status_text(status: str) -> str:
    """Colour a status value; unknown statuses stay white."""
    return colored(status, STATUS_COLORS.get(status, 'white'))


def duration_text(seconds: int) -> str:
    """Format seconds as fixed-width ` Mm SSs`."""
    return f"{seconds // 60:2d}m{seconds % 60:2d}s"


def instance_type_label(instance_type: Optional[str]) -> str:
    """Map a CodeDeploy instance type (Blue/Green) to a display label.

    Returns:
        'original', 'replacement' or '' for non blue/green deployments
    """
    if not instance_type:
        return ''
    return INSTANCE_TYPE_LABELS.get(instance_type.lower(), '')


def deployment_line(deployment: "Deployment", num_success: int, num_total: int) -> str:
    """Build the header line of a deployment.

    Args:
        deployment: Deployment to describe
        num_success: Instances in a terminal-success status
        num_total: Tracked instances

    Returns:
        Line ending in a newline
    """
    return (
        f"{colored(deployment.deployment_id, 'cyan')} "
        f"{escape(deployment.application)}-{escape(deployment.group)} "
        f"({num_success}/{num_total})\n"
    )


def instance_line(instance: "Instance") -> str:
    """Build the verbose-mode instance line (name and id)."""
    return f"  {colored(instance.name, 'magenta')} ({instance.instance_id})\n"


def compact_instance_line(
    instance: "Instance",
    summary: Optional["InstanceSummary"],
    name_width: int
) -> str:
    """Build the single compact-mode line for an instance.

    Args:
        instance: Instance to describe
        summary: Latest status summary, None if never polled
        name_width: Width the instance name is padded to

    Returns:
        Line ending in a newline
    """
    status = summary.status if summary is not None else 'Pending'
    duration = duration_text(summary.total_duration_sec if summary is not None else 0)
    line = (
        f"  {escape(instance.name.ljust(name_width))} ({instance.instance_id}) "
        f"{duration} {status_text(status)}"
    )

    label = instance_type_label(summary.instance_type if summary is not None else None)
    if label:
        line += f" ({label})"

    return line + "\n"


def lifecycle_event_line(event: "LifecycleEvent") -> str:
    """Build the verbose-mode line of one lifecycle event."""
    return (
        f"    => {escape(event.name.ljust(20))} "
        f"{duration_text(event.duration_sec)} {status_text(event.status)}\n"
    )
