#!/usr/bin/env python3
# CUI // SP-CTI
"""ssm-testkit Resilience Package — Errors and Bounded Polling."""

from ssm_testkit.resilience.errors import (  # noqa: F401
    AuthenticationError,
    CommandFailedError,
    ConfigurationError,
    NotFoundError,
    PermanentError,
    RemoteAPIError,
    RetryExhaustedError,
    SSMTestkitError,
    TransientError,
)
from ssm_testkit.resilience.retry import (  # noqa: F401
    attempts_for_timeout,
    do_with_retry,
    to_seconds,
)
