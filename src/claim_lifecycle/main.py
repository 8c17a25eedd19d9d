"""CLI entry point for the claim lifecycle.

Commands create claims, apply lifecycle actions, and inspect stored claims.
Results are printed as JSON on stdout; logs go to stderr.
"""

import json
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from claim_lifecycle.lifecycle.errors import ClaimLifecycleError

_VALUE_OPTIONS = ("--actor", "--conversation")


def _setup_logging() -> None:
    """Configure logging for CLI usage."""
    from claim_lifecycle.observability import get_logger

    get_logger("claim_lifecycle")
    logging.getLogger("claim_lifecycle").setLevel(
        logging.DEBUG if os.environ.get("CLAIM_LIFECYCLE_LOG_LEVEL") == "DEBUG" else logging.INFO
    )


def _usage() -> str:
    return """Usage:
  claim-lifecycle create <policy_no> [--conversation ID]        Create a draft claim
  claim-lifecycle transition <claim_id> <action> [payload.json]  Apply a lifecycle action
  claim-lifecycle amend <claim_id> <payload.json>                Update claim details
  claim-lifecycle attach <claim_id> <file_ref>                   Add an attachment reference
  claim-lifecycle status <claim_id>                              Show a claim
  claim-lifecycle history <claim_id>                             Show the claim timeline
  claim-lifecycle list <policy_no>                               List claims for a policy
  claim-lifecycle actions <claim_id>                             Show allowed actions

Actions: complete-intake, submit, start-review, request-info, resubmit,
         approve, deny, withdraw

Options:
  --actor USER|AGENT|SYSTEM          Who performs the change (default: USER)
  --conversation ID                  Originating conversation (create only)
  --debug                            Enable debug logging
  --json                             Use JSON log format
"""


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def _load_payload(path: Path | None) -> dict:
    if path is None:
        return {}
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {path}: {e}")
    if not isinstance(data, dict):
        _fail(f"Payload in {path} must be a JSON object")
    return data


def _service():
    from claim_lifecycle.lifecycle.service import ClaimService

    return ClaimService()


def _run(operation) -> None:
    """Run a service call, printing the result or a typed error."""
    try:
        result = operation()
    except ClaimLifecycleError as e:
        print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print("Error: Invalid payload:", file=sys.stderr)
        print(e.json(), file=sys.stderr)
        sys.exit(1)
    if isinstance(result, list):
        _print_json([item.model_dump(mode="json") for item in result])
    else:
        _print_json(result.model_dump(mode="json"))


def cmd_create(policy_no: str, conversation_id: str | None, actor: str) -> None:
    """Create a draft claim."""
    _run(lambda: _service().open_claim(policy_no, conversation_id, actor))


def cmd_transition(claim_id: str, action: str, actor: str, payload_path: Path | None = None) -> None:
    """Apply a lifecycle action to a claim."""
    payload = _load_payload(payload_path)
    _run(lambda: _service().apply_action(claim_id, action, actor, payload))


def cmd_amend(claim_id: str, payload_path: Path, actor: str) -> None:
    """Update descriptive fields of a claim."""
    payload = _load_payload(payload_path)
    _run(lambda: _service().amend_claim(claim_id, payload, actor))


def cmd_attach(claim_id: str, reference: str, actor: str) -> None:
    """Append an attachment reference."""
    _run(lambda: _service().attach(claim_id, reference, actor))


def cmd_status(claim_id: str) -> None:
    """Print a claim."""
    _run(lambda: _service().get_claim(claim_id))


def cmd_history(claim_id: str) -> None:
    """Print a claim's timeline."""
    _run(lambda: _service().history(claim_id))


def cmd_list(policy_no: str) -> None:
    """Print all claims for a policy."""
    _run(lambda: _service().list_claims(policy_no))


def cmd_actions(claim_id: str) -> None:
    """Print the actions allowed from a claim's current state."""
    from claim_lifecycle.lifecycle.state_machine import allowed_actions

    try:
        case = _service().get_claim(claim_id)
    except ClaimLifecycleError as e:
        print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        sys.exit(1)
    _print_json(
        {
            "claim_id": case.claim_id,
            "state": case.state.value,
            "allowed_actions": [a.value for a in allowed_actions(case.state)],
        }
    )


def _split_args(args: list[str]) -> tuple[list[str], dict[str, str], set[str]]:
    """Separate positional args, --name value options, and bare flags."""
    positional: list[str] = []
    values: dict[str, str] = {}
    flags: set[str] = set()
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in _VALUE_OPTIONS:
            if i + 1 >= len(args):
                _fail(f"{arg} requires a value")
            values[arg] = args[i + 1]
            i += 2
            continue
        if arg.startswith("--"):
            flags.add(arg)
        else:
            positional.append(arg)
        i += 1
    return positional, values, flags


def main() -> None:
    """Run the claim lifecycle CLI."""
    argv, values, flags = _split_args(sys.argv[1:])

    if "--json" in flags:
        os.environ["CLAIM_LIFECYCLE_LOG_FORMAT"] = "json"
    if "--debug" in flags:
        os.environ["CLAIM_LIFECYCLE_LOG_LEVEL"] = "DEBUG"

    _setup_logging()

    if not argv:
        print(_usage(), file=sys.stderr)
        sys.exit(1)

    command = argv[0].lower()
    actor = values.get("--actor", "USER")
    required = {
        "create": 1,
        "transition": 2,
        "amend": 2,
        "attach": 2,
        "status": 1,
        "history": 1,
        "list": 1,
        "actions": 1,
    }
    if command not in required:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        print(_usage(), file=sys.stderr)
        sys.exit(1)
    if len(argv) - 1 < required[command]:
        print(f"Error: {command} requires {required[command]} argument(s)", file=sys.stderr)
        print(_usage(), file=sys.stderr)
        sys.exit(1)

    if command == "create":
        cmd_create(argv[1], values.get("--conversation"), actor)
    elif command == "transition":
        payload_path = Path(argv[3]) if len(argv) > 3 else None
        cmd_transition(argv[1], argv[2], actor, payload_path)
    elif command == "amend":
        cmd_amend(argv[1], Path(argv[2]), actor)
    elif command == "attach":
        cmd_attach(argv[1], argv[2], actor)
    elif command == "status":
        cmd_status(argv[1])
    elif command == "history":
        cmd_history(argv[1])
    elif command == "list":
        cmd_list(argv[1])
    else:
        cmd_actions(argv[1])


if __name__ == "__main__":
    main()
