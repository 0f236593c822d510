# [TEMPLATE: CUI // SP-CTI]
"""Tests for ssm_testkit.resilience.errors — Structured exception hierarchy."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from ssm_testkit.resilience.errors import (
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


class TestBaseError:

    def test_message_service_and_default_retryable(self):
        err = SSMTestkitError("something broke", service="ssm")
        assert str(err) == "something broke"
        assert err.service == "ssm"
        assert err.retryable is False


class TestRetryableDefaults:
    """Transient errors default to retryable, permanent ones never are."""

    def test_transient(self):
        assert TransientError("timeout").retryable is True

    def test_permanent(self):
        assert PermanentError("bad input").retryable is False

    def test_remote_api_error_defaults_retryable(self):
        err = RemoteAPIError("throttled", error_code="ThrottlingException", operation="GetInventory")
        assert err.retryable is True
        assert err.error_code == "ThrottlingException"
        assert err.operation == "GetInventory"
        assert err.service == "ssm"

    def test_remote_api_error_can_be_permanent(self):
        assert RemoteAPIError("denied", retryable=False).retryable is False

    @pytest.mark.parametrize("err", [
        AuthenticationError("no creds"),
        NotFoundError("missing", resource="/a/b"),
        ConfigurationError("bad", config_key="polling.instance_interval_seconds"),
        CommandFailedError("exit 1"),
        RetryExhaustedError("waiting", 3),
    ])
    def test_permanent_subclasses(self, err):
        assert isinstance(err, PermanentError)
        assert isinstance(err, SSMTestkitError)
        assert err.retryable is False


class TestSpecificErrors:

    def test_not_found_resource(self):
        assert NotFoundError("missing", resource="/app/key").resource == "/app/key"

    def test_configuration_error_key(self):
        err = ConfigurationError("bad interval", config_key="polling.command_interval_seconds")
        assert err.config_key == "polling.command_interval_seconds"
        assert err.service == "config"

    def test_retry_exhausted_message(self):
        last = ValueError("i-123 is not in the SSM inventory")
        err = RetryExhaustedError("Waiting for i-123", 15, last)
        assert err.attempts == 15
        assert err.last_error is last
        assert str(err) == (
            "'Waiting for i-123' unsuccessful after 15 attempt(s): "
            "i-123 is not in the SSM inventory"
        )

    def test_retry_exhausted_without_last_error(self):
        assert str(RetryExhaustedError("x", 0)) == "'x' unsuccessful after 0 attempt(s)"

    def test_command_failed_carries_output(self):
        output = object()
        assert CommandFailedError("failed", output=output).output is output
