#!/usr/bin/env python3
# CUI // SP-CTI
"""boto3 session and SSM client construction.

Also translates botocore exceptions into the ssm-testkit error hierarchy so
callers never have to import botocore to tell a missing parameter from an
expired token.
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ProfileNotFound,
)

from ssm_testkit.resilience.errors import (
    AuthenticationError,
    NotFoundError,
    RemoteAPIError,
    SSMTestkitError,
)

logger = logging.getLogger("ssm_testkit.aws.session")

AUTH_ERROR_CODES = {
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "InvalidSignatureException",
    "ExpiredTokenException",
    "ExpiredToken",
    "AuthFailure",
}

NOT_FOUND_ERROR_CODES = {
    "ParameterNotFound",
    "ParameterVersionNotFound",
    "InvalidInstanceId",
    "InvocationDoesNotExist",
}

RETRYABLE_ERROR_CODES = {
    "ThrottlingException",
    "Throttling",
    "TooManyUpdates",
    "InternalServerError",
    "ServiceUnavailable",
    "RequestLimitExceeded",
}


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def translate_aws_error(exc: Exception, operation: str = "") -> SSMTestkitError:
    """Map a botocore exception onto the ssm-testkit error hierarchy."""
    if isinstance(exc, SSMTestkitError):
        return exc
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError,
                        ProfileNotFound, NoRegionError)):
        return AuthenticationError(f"{operation or 'AWS call'} failed: {exc}")
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        op = operation or exc.operation_name
        if code in AUTH_ERROR_CODES:
            return AuthenticationError(f"{op} rejected credentials ({code}): {exc}")
        if code in NOT_FOUND_ERROR_CODES:
            return NotFoundError(f"{op} failed ({code}): {exc}")
        return RemoteAPIError(
            f"{op} failed ({code}): {exc}",
            error_code=code,
            operation=op,
            retryable=code in RETRYABLE_ERROR_CODES,
        )
    if isinstance(exc, BotoCoreError):
        # Transport-level failure: connection refused, timeouts, DNS.
        return RemoteAPIError(
            f"{operation or 'AWS call'} could not be sent: {exc}",
            error_code=type(exc).__name__,
            operation=operation,
            retryable=True,
        )
    return RemoteAPIError(
        f"{operation or 'AWS call'} failed: {exc}",
        error_code=type(exc).__name__,
        operation=operation,
        retryable=False,
    )


def new_authenticated_session(region: str, profile: Optional[str] = None) -> boto3.session.Session:
    """Create a boto3 session for ``region`` and verify it resolves credentials."""
    try:
        session = boto3.session.Session(region_name=region, profile_name=profile or None)
        credentials = session.get_credentials()
    except BotoCoreError as exc:
        raise AuthenticationError(f"Could not create AWS session for {region}: {exc}") from exc
    if credentials is None:
        raise AuthenticationError(
            f"No AWS credentials found for region {region}"
            + (f" (profile {profile})" if profile else "")
        )
    logger.debug("AWS session ready: region=%s profile=%s", region, profile or "default")
    return session


def new_ssm_client(region: str, profile: Optional[str] = None,
                   session: Optional[boto3.session.Session] = None):
    """Create an SSM client bound to ``region``.

    Raises AuthenticationError when no session or credentials can be built.
    """
    session = session or new_authenticated_session(region, profile)
    try:
        return session.client("ssm", region_name=region)
    except BotoCoreError as exc:
        raise AuthenticationError(f"Could not create SSM client for {region}: {exc}") from exc
