#!/usr/bin/env python3
# CUI // SP-CTI
"""SSM helpers for integration tests — Parameter Store, inventory, Run Command.

Every operation is a thin wrapper over a boto3 SSM client. Pass a client in
to make the boundary substitutable in tests; otherwise one is created for
the region on first use and cached on the SSMHelper.

    from ssm_testkit.aws.ssm import SSMHelper

    helper = SSMHelper("us-east-1")
    version = helper.put_parameter("/app/db-password", "test password", "s3cret")
    assert helper.get_parameter("/app/db-password") == "s3cret"
    helper.wait_for_instance("i-0123456789abcdef0", timeout=300)

CLI: get, put, delete, wait, run (global --region, --config, --json)
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any, Dict, Optional, Union

from ssm_testkit.aws.session import new_ssm_client, translate_aws_error
from ssm_testkit.config import default_region, load_config
from ssm_testkit.resilience.errors import (
    CommandFailedError,
    NotFoundError,
    SSMTestkitError,
    TransientError,
)
from ssm_testkit.resilience.retry import attempts_for_timeout, do_with_retry

logger = logging.getLogger("ssm_testkit.aws.ssm")

Duration = Union[int, float, timedelta]

RUN_SHELL_DOCUMENT = "AWS-RunShellScript"
PENDING_COMMAND_STATUSES = {"Pending", "InProgress", "Delayed"}


@dataclass
class CommandOutput:
    """Result of a command run on a managed instance."""
    command_id: str
    instance_id: str
    status: str
    response_code: int = -1
    stdout: str = ""
    stderr: str = ""


class InstanceNotRegisteredError(TransientError):
    """Instance has not (yet) appeared in the SSM inventory."""

    def __init__(self, instance_id: str, entities: int = 0):
        super().__init__(
            f"{instance_id} is not in the SSM inventory ({entities} matching entities)",
            service="ssm",
        )
        self.instance_id = instance_id


class CommandPendingError(TransientError):
    """Command invocation has not reached a terminal status yet."""

    def __init__(self, command_id: str, status: str):
        super().__init__(f"Command {command_id} is still {status}", service="ssm")
        self.command_id = command_id
        self.status = status


class SSMHelper:
    """Region-bound SSM operations with an injected or lazily created client."""

    def __init__(self, region: Optional[str] = None, client=None,
                 config: Optional[Dict[str, Any]] = None):
        self._config = config if config is not None else load_config()
        self._region = region or default_region(self._config)
        self._client = client

    @property
    def region(self) -> str:
        return self._region

    @property
    def client(self):
        """Return cached SSM client, creating if needed."""
        if self._client is None:
            profile = self._config["aws"].get("profile") or None
            self._client = new_ssm_client(self._region, profile=profile)
        return self._client

    def _call(self, operation: str, method: str, **kwargs) -> Dict:
        logger.debug("ssm:%s %s", operation, {k: v for k, v in kwargs.items() if k != "Value"})
        try:
            return getattr(self.client, method)(**kwargs)
        except SSMTestkitError:
            raise
        except Exception as exc:
            raise translate_aws_error(exc, operation) from exc

    # -----------------------------------------------------------------------
    # Parameter Store
    # -----------------------------------------------------------------------
    def get_parameter(self, key_name: str) -> str:
        """Return the latest value of ``key_name``, decrypted."""
        try:
            resp = self._call("GetParameter", "get_parameter",
                              Name=key_name, WithDecryption=True)
        except NotFoundError as exc:
            raise NotFoundError(f"Parameter {key_name} not found", resource=key_name) from exc
        return resp["Parameter"]["Value"]

    def put_parameter(self, key_name: str, description: str, value: str) -> int:
        """Write a new version of ``key_name`` and return its version number."""
        params = self._config["parameters"]
        resp = self._call(
            "PutParameter", "put_parameter",
            Name=key_name,
            Description=description,
            Value=value,
            Type=params.get("type", "SecureString"),
            Overwrite=bool(params.get("overwrite", True)),
        )
        version = int(resp["Version"])
        logger.info("Put parameter %s (version %d)", key_name, version)
        return version

    def delete_parameter(self, key_name: str) -> None:
        """Delete ``key_name``; raises NotFoundError if it does not exist."""
        try:
            self._call("DeleteParameter", "delete_parameter", Name=key_name)
        except NotFoundError as exc:
            raise NotFoundError(f"Parameter {key_name} not found", resource=key_name) from exc
        logger.info("Deleted parameter %s", key_name)

    # -----------------------------------------------------------------------
    # Inventory
    # -----------------------------------------------------------------------
    def _instance_in_inventory(self, instance_id: str) -> None:
        resp = self._call(
            "GetInventory", "get_inventory",
            Filters=[{
                "Key": self._config["inventory"]["filter_key"],
                "Type": "Equal",
                "Values": [instance_id],
            }],
        )
        entities = resp.get("Entities", [])
        if len(entities) != 1:
            raise InstanceNotRegisteredError(instance_id, len(entities))

    def wait_for_instance(self, instance_id: str, timeout: Optional[Duration] = None) -> None:
        """Block until ``instance_id`` shows up in the SSM inventory.

        Polls at polling.instance_interval_seconds (2s by default) for
        timeout / interval attempts. Throttling and transport failures are
        retried like an absent instance; credential errors are not.
        """
        polling = self._config["polling"]
        interval = float(polling["instance_interval_seconds"])
        if timeout is None:
            timeout = polling["default_timeout_seconds"]
        max_attempts = attempts_for_timeout(timeout, interval)
        description = f"Waiting for {instance_id} to appear in the SSM inventory"

        do_with_retry(
            description, max_attempts, interval,
            lambda: self._instance_in_inventory(instance_id),
        )
        logger.info("%s registered in the SSM inventory (%s)", instance_id, self._region)

    # -----------------------------------------------------------------------
    # Run Command
    # -----------------------------------------------------------------------
    def _command_invocation(self, command_id: str, instance_id: str) -> CommandOutput:
        try:
            resp = self._call("GetCommandInvocation", "get_command_invocation",
                              CommandId=command_id, InstanceId=instance_id)
        except NotFoundError as exc:
            # SSM needs a moment after SendCommand before the invocation exists.
            raise CommandPendingError(command_id, "not yet visible") from exc

        output = CommandOutput(
            command_id=command_id,
            instance_id=instance_id,
            status=resp.get("Status", ""),
            response_code=int(resp.get("ResponseCode", -1)),
            stdout=resp.get("StandardOutputContent", ""),
            stderr=resp.get("StandardErrorContent", ""),
        )
        if output.status in PENDING_COMMAND_STATUSES:
            raise CommandPendingError(command_id, output.status)
        return output

    def run_command(self, instance_id: str, command: str,
                    timeout: Optional[Duration] = None) -> CommandOutput:
        """Run a shell command on ``instance_id`` and wait for it to finish.

        Raises CommandFailedError if the invocation ends in any status other
        than Success.
        """
        polling = self._config["polling"]
        interval = float(polling["command_interval_seconds"])
        if timeout is None:
            timeout = polling["default_timeout_seconds"]

        resp = self._call(
            "SendCommand", "send_command",
            InstanceIds=[instance_id],
            DocumentName=RUN_SHELL_DOCUMENT,
            Parameters={"commands": [command]},
        )
        command_id = resp["Command"]["CommandId"]
        logger.info("Sent command %s to %s", command_id, instance_id)

        output = do_with_retry(
            f"Waiting for command {command_id} on {instance_id}",
            attempts_for_timeout(timeout, interval), interval,
            lambda: self._command_invocation(command_id, instance_id),
        )
        if output.status != "Success":
            raise CommandFailedError(
                f"Command {command_id} on {instance_id} finished with status "
                f"{output.status} (exit {output.response_code}): {output.stderr.strip()}",
                output=output,
            )
        return output


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------
def get_parameter(region: str, key_name: str, client=None) -> str:
    """Retrieve the latest version of the parameter at ``key_name``, decrypted."""
    return SSMHelper(region, client=client).get_parameter(key_name)


def put_parameter(region: str, key_name: str, description: str, value: str,
                  client=None) -> int:
    """Create a new SecureString version of ``key_name`` and return its version."""
    return SSMHelper(region, client=client).put_parameter(key_name, description, value)


def delete_parameter(region: str, key_name: str, client=None) -> None:
    SSMHelper(region, client=client).delete_parameter(key_name)


def wait_for_instance(region: str, instance_id: str, timeout: Duration,
                      client=None) -> None:
    """Wait until ``instance_id`` is registered in the SSM inventory."""
    SSMHelper(region, client=client).wait_for_instance(instance_id, timeout)


def run_command(region: str, instance_id: str, command: str,
                timeout: Duration, client=None) -> CommandOutput:
    return SSMHelper(region, client=client).run_command(instance_id, command, timeout)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------
def main(argv=None) -> int:
    """CLI for poking at SSM from a shell while writing tests."""
    parser = argparse.ArgumentParser(
        description="ssm-testkit — Parameter Store, inventory and Run Command helpers"
    )
    parser.add_argument("--region", help="AWS region (default: from config)")
    parser.add_argument("--config", help="Path to ssm_config.yaml")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    p_get = sub.add_parser("get", help="Print a decrypted parameter value")
    p_get.add_argument("name")

    p_put = sub.add_parser("put", help="Write a SecureString parameter")
    p_put.add_argument("name")
    p_put.add_argument("value")
    p_put.add_argument("--description", default="", help="Parameter description")

    p_del = sub.add_parser("delete", help="Delete a parameter")
    p_del.add_argument("name")

    p_wait = sub.add_parser("wait", help="Wait for an instance to register in the inventory")
    p_wait.add_argument("instance_id")
    p_wait.add_argument("--timeout", type=float, default=None,
                        help="Seconds to wait (default: from config)")

    p_run = sub.add_parser("run", help="Run a shell command on a managed instance")
    p_run.add_argument("instance_id")
    p_run.add_argument("shell_command")
    p_run.add_argument("--timeout", type=float, default=None,
                       help="Seconds to wait (default: from config)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    result: Dict[str, Any] = {"region": args.region, "command": args.command}

    try:
        helper = SSMHelper(args.region, config=load_config(args.config))
        result["region"] = helper.region
        if args.command == "get":
            result["value"] = helper.get_parameter(args.name)
        elif args.command == "put":
            result["version"] = helper.put_parameter(args.name, args.description, args.value)
        elif args.command == "delete":
            helper.delete_parameter(args.name)
            result["deleted"] = args.name
        elif args.command == "wait":
            helper.wait_for_instance(args.instance_id, args.timeout)
            result["registered"] = args.instance_id
        elif args.command == "run":
            result["output"] = asdict(
                helper.run_command(args.instance_id, args.shell_command, args.timeout)
            )
    except SSMTestkitError as exc:
        if args.json:
            print(json.dumps({**result, "error": type(exc).__name__, "message": str(exc)},
                             indent=2))
        else:
            print(f"ERROR ({type(exc).__name__}): {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result, indent=2))
    elif args.command == "get":
        print(result["value"])
    elif args.command == "put":
        print(f"{args.name}: version {result['version']}")
    elif args.command == "delete":
        print(f"Deleted {args.name}")
    elif args.command == "wait":
        print(f"{args.instance_id} is registered in {helper.region}")
    else:
        output = result["output"]
        print(output["stdout"], end="")
        if output["stderr"]:
            print(output["stderr"], end="", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
