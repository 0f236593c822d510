#!/usr/bin/env python3
# CUI // SP-CTI
"""pytest fixtures for tests that talk to SSM.

Registered through the ``pytest11`` entry point, so installing ssm-testkit
makes these available to any test suite:

    def test_reads_config(ssm_parameter, ssm_helper):
        name = ssm_parameter("/myapp/test/db-url", "postgres://...")
        assert ssm_helper.get_parameter(name) == "postgres://..."

No client is created until a fixture actually calls SSM.
"""

import logging

import pytest

from ssm_testkit.aws.ssm import SSMHelper
from ssm_testkit.config import default_region, load_config
from ssm_testkit.resilience.errors import NotFoundError, SSMTestkitError

logger = logging.getLogger("ssm_testkit.pytest_plugin")


@pytest.fixture(scope="session")
def ssm_config():
    """Loaded ssm-testkit configuration (args/ssm_config.yaml or defaults)."""
    return load_config()


@pytest.fixture(scope="session")
def ssm_region(ssm_config):
    """Region the SSM fixtures operate in."""
    return default_region(ssm_config)


@pytest.fixture
def ssm_helper(ssm_region, ssm_config):
    """SSMHelper bound to ``ssm_region``; the client is created lazily."""
    return SSMHelper(ssm_region, config=ssm_config)


@pytest.fixture
def ssm_parameter(ssm_helper):
    """Factory that puts parameters and deletes them when the test ends.

    Call as ``ssm_parameter(name, value, description="")``; returns the name.
    """
    created = []

    def _put(name: str, value: str, description: str = "") -> str:
        ssm_helper.put_parameter(name, description or f"ssm-testkit fixture for {name}", value)
        created.append(name)
        return name

    yield _put

    for name in reversed(created):
        try:
            ssm_helper.delete_parameter(name)
        except NotFoundError:
            logger.debug("Parameter %s already gone at teardown", name)
        except SSMTestkitError as exc:
            # Keep going so one failed delete does not leak the rest.
            logger.error("Could not delete parameter %s at teardown: %s", name, exc)
