#!/usr/bin/env python3
# CUI // SP-CTI
"""AWS helpers: session/client construction and SSM operations."""

from ssm_testkit.aws.session import (  # noqa: F401
    new_authenticated_session,
    new_ssm_client,
    translate_aws_error,
)
from ssm_testkit.aws.ssm import (  # noqa: F401
    CommandOutput,
    SSMHelper,
    delete_parameter,
    get_parameter,
    put_parameter,
    run_command,
    wait_for_instance,
)
