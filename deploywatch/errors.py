"""Error taxonomy for deploywatch and AWS error-code mapping."""

from typing import Dict, Type


class DeployWatchError(Exception):
    """Base class for deploywatch errors."""
    pass


class TransientServiceError(DeployWatchError):
    """Network, throttling or server-side failure from a collaborator call.

    Never fatal: the calling job logs it, throttles and retries on its
    next tick.
    """
    pass


class ServiceReportedError(TransientServiceError):
    """Call succeeded at the transport level but carried an error message."""
    pass


class UnknownEntityError(DeployWatchError):
    """Deployment (or other entity) id cannot be resolved by the service."""
    pass


class FatalStartupError(DeployWatchError):
    """Dashboard could not be initialised; the process must abort."""
    pass


# AWS error codes that mean "this id does not exist"
ERROR_CODES: Dict[str, Type[DeployWatchError]] = {
    'DeploymentDoesNotExistException': UnknownEntityError,
    'InvalidDeploymentIdException': UnknownEntityError,
    'DeploymentIdRequiredException': UnknownEntityError,
    'ApplicationDoesNotExistException': UnknownEntityError,
    'DeploymentGroupDoesNotExistException': UnknownEntityError,
}


def error_for_code(code: str) -> Type[DeployWatchError]:
    """Map an AWS error code to a deploywatch error class.

    Args:
        code: Error code from a botocore ClientError response

    Returns:
        Error class; unknown codes are treated as transient
    """
    return ERROR_CODES.get(code, TransientServiceError)
