#!/usr/bin/env python3
# CUI // SP-CTI
"""Shared pytest fixtures for the ssm-testkit test suite.

FakeSSMClient stands in for a boto3 SSM client: same method names, same
response shapes, and real botocore ClientErrors on failure, so the code
under test goes through its normal translation paths.
"""

import sys
from collections import deque
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

# Ensure project root is on sys.path
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from ssm_testkit.config import load_config  # noqa: E402


def make_client_error(code: str, operation: str = "GetParameter", message: str = "") -> ClientError:
    """Build a botocore ClientError the way the SSM service returns one."""
    return ClientError(
        {"Error": {"Code": code, "Message": message or code},
         "ResponseMetadata": {"HTTPStatusCode": 400}},
        operation,
    )


class FakeSSMClient:
    """In-memory SSM client with versioned parameters and a scripted inventory."""

    def __init__(self):
        self.parameters = {}
        self.registered = set()
        self.inventory_queries = 0
        self.inventory_errors = deque()
        self.delete_errors = deque()
        self.register_after = {}
        self.command_statuses = deque()
        self.command_output = {"StandardOutputContent": "", "StandardErrorContent": ""}
        self.sent_commands = []
        self.calls = []

    # Parameter Store --------------------------------------------------------
    def get_parameter(self, Name, WithDecryption=False):
        self.calls.append(("get_parameter", Name, WithDecryption))
        if Name not in self.parameters:
            raise make_client_error("ParameterNotFound", "GetParameter")
        param = self.parameters[Name]
        return {"Parameter": {"Name": Name, "Type": param["Type"],
                              "Value": param["Value"], "Version": param["Version"]}}

    def put_parameter(self, Name, Value, Type="String", Description="", Overwrite=False):
        self.calls.append(("put_parameter", Name, Type, Overwrite))
        existing = self.parameters.get(Name)
        if existing and not Overwrite:
            raise make_client_error("ParameterAlreadyExists", "PutParameter")
        version = existing["Version"] + 1 if existing else 1
        self.parameters[Name] = {"Value": Value, "Type": Type,
                                 "Description": Description, "Version": version}
        return {"Version": version, "Tier": "Standard"}

    def delete_parameter(self, Name):
        self.calls.append(("delete_parameter", Name))
        if self.delete_errors:
            raise self.delete_errors.popleft()
        if Name not in self.parameters:
            raise make_client_error("ParameterNotFound", "DeleteParameter")
        del self.parameters[Name]
        return {}

    # Inventory ---------------------------------------------------------------
    def get_inventory(self, Filters):
        self.inventory_queries += 1
        self.calls.append(("get_inventory", Filters))
        if self.inventory_errors:
            raise self.inventory_errors.popleft()
        instance_id = Filters[0]["Values"][0]
        threshold = self.register_after.get(instance_id)
        if threshold is not None and self.inventory_queries >= threshold:
            self.registered.add(instance_id)
        if instance_id in self.registered:
            return {"Entities": [{"Id": instance_id, "Data": {}}]}
        return {"Entities": []}

    # Run Command -------------------------------------------------------------
    def send_command(self, InstanceIds, DocumentName, Parameters):
        command_id = f"cmd-{len(self.sent_commands) + 1:04d}"
        self.sent_commands.append({"CommandId": command_id, "InstanceIds": InstanceIds,
                                   "DocumentName": DocumentName, "Parameters": Parameters})
        return {"Command": {"CommandId": command_id, "Status": "Pending"}}

    def get_command_invocation(self, CommandId, InstanceId):
        self.calls.append(("get_command_invocation", CommandId, InstanceId))
        step = self.command_statuses.popleft() if self.command_statuses else "Success"
        if isinstance(step, Exception):
            raise step
        code = 0 if step == "Success" else (-1 if step in ("Pending", "InProgress") else 1)
        return {"CommandId": CommandId, "InstanceId": InstanceId, "Status": step,
                "ResponseCode": code, **self.command_output}


@pytest.fixture
def fake_ssm():
    """Fresh in-memory SSM client."""
    return FakeSSMClient()


@pytest.fixture
def ssm_test_config(tmp_path):
    """Default configuration with a fixed region, independent of the environment."""
    config = load_config(str(tmp_path / "absent.yaml"))
    config["aws"]["region"] = "us-east-1"
    config["aws"]["profile"] = ""
    return config


@pytest.fixture
def no_sleep(monkeypatch):
    """Record poller sleeps instead of sleeping."""
    sleeps = []
    monkeypatch.setattr("ssm_testkit.resilience.retry.time.sleep", sleeps.append)
    return sleeps
