#!/usr/bin/env python3
# CUI // SP-CTI
"""ssm-testkit Resilience — Structured Exception Hierarchy.

Every helper raises one of these instead of a raw botocore exception so
test code can branch on the failure kind. The ``retryable`` flag is what
the poller consults to decide whether another attempt makes sense.

Usage:
    from ssm_testkit.resilience.errors import NotFoundError, RetryExhaustedError

    raise NotFoundError("Parameter /app/db-password not found", resource="/app/db-password")
"""

from typing import Optional


class SSMTestkitError(Exception):
    """Root of everything the SSM helpers raise.

    Attributes:
        service: "ssm" for API failures, "config" for bad settings.
        retryable: Read by do_with_retry; False ends a poll on the spot.
    """

    def __init__(self, message: str, service: str = "", retryable: bool = False):
        super().__init__(message)
        self.service = service
        self.retryable = retryable


class TransientError(SSMTestkitError):
    """A later poll may see a different answer.

    Raised for an instance missing from the inventory, a command still
    InProgress, or SSM throttling the request.
    """

    def __init__(self, message: str, service: str = "", retryable: bool = True):
        super().__init__(message, service=service, retryable=retryable)


class PermanentError(SSMTestkitError):
    """Polling again cannot change the outcome.

    Raised for rejected credentials, a parameter that does not exist, or
    settings in ssm_config.yaml that cannot be used.
    """

    def __init__(self, message: str, service: str = "", retryable: bool = False):
        super().__init__(message, service=service, retryable=retryable)


class RemoteAPIError(TransientError):
    """The provider rejected or failed the call.

    Throttling and transport failures are retryable; access-denied and
    validation failures are created with ``retryable=False``.

    Attributes:
        error_code: AWS error code (e.g. "AccessDeniedException"), if any.
        operation: API operation name (e.g. "PutParameter").
    """

    def __init__(
        self,
        message: str,
        service: str = "ssm",
        error_code: str = "",
        operation: str = "",
        retryable: bool = True,
    ):
        super().__init__(message, service=service, retryable=retryable)
        self.error_code = error_code
        self.operation = operation


class AuthenticationError(PermanentError):
    """Session or client construction failed, or credentials were rejected."""

    def __init__(self, message: str, service: str = "ssm"):
        super().__init__(message, service=service, retryable=False)


class NotFoundError(PermanentError):
    """Parameter, instance or command invocation does not exist.

    Attributes:
        resource: Name or identifier of the missing resource.
    """

    def __init__(self, message: str, resource: str = "", service: str = "ssm",
                 retryable: bool = False):
        super().__init__(message, service=service, retryable=retryable)
        self.resource = resource


class ConfigurationError(PermanentError):
    """ssm_config.yaml holds a value the helpers cannot use.

    Attributes:
        config_key: Dotted path of the offending key (e.g. "polling.instance_interval_seconds").
    """

    def __init__(self, message: str, config_key: str = ""):
        super().__init__(message, service="config", retryable=False)
        self.config_key = config_key


class CommandFailedError(PermanentError):
    """A command sent through SSM finished in a non-success state.

    Attributes:
        output: The CommandOutput of the failed invocation.
    """

    def __init__(self, message: str, output=None):
        super().__init__(message, service="ssm", retryable=False)
        self.output = output


class RetryExhaustedError(PermanentError):
    """Poll attempts ran out without a successful call.

    Attributes:
        description: What was being waited for.
        attempts: Number of calls made.
        last_error: Exception raised by the final call.
    """

    def __init__(self, description: str, attempts: int,
                 last_error: Optional[BaseException] = None):
        message = f"'{description}' unsuccessful after {attempts} attempt(s)"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message, retryable=False)
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
