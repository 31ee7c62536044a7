"""Decorators for deploywatch polling jobs."""

import logging
from functools import wraps
from typing import Callable, Optional

from ..errors import TransientServiceError, UnknownEntityError
from .backoff import BackoffController


def guard_job(
    logger: logging.Logger,
    backoff: Optional[BackoffController] = None
) -> Callable:
    """Decorator applying the polling error policy to a job.

    - TransientServiceError (incl. ServiceReportedError): logged, and the
      shared backoff controller is throttled
    - UnknownEntityError: logged, the attempt is skipped
    - any other Exception: logged with traceback

    Nothing raised by the job escapes the wrapper.

    Args:
        logger: Logger receiving failure reports
        backoff: Controller to throttle on transient failures

    Returns:
        Decorated function returning the job's result, or None on failure
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            label = "/".join(str(arg) for arg in args) or func.__name__
            try:
                return func(*args, **kwargs)
            except TransientServiceError as e:
                if backoff is not None:
                    delay = backoff.throttle()
                    logger.warning(f"{func.__name__}({label}) failed, backing off to {delay:.2f}s: {e}")
                else:
                    logger.warning(f"{func.__name__}({label}) failed: {e}")
            except UnknownEntityError as e:
                logger.warning(f"{func.__name__}({label}) skipped: {e}")
            except Exception:
                logger.exception(f"{func.__name__}({label}) crashed")
            return None

        return wrapper

    return decorator
