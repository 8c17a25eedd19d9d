"""MCP server exposing claim lifecycle operations via stdio transport.

Tools are meant for the agent layer: every tool returns a JSON string, either
the resulting claim or an error object naming the failed rule.
"""

import json
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP

from claim_lifecycle.lifecycle.errors import ClaimLifecycleError
from claim_lifecycle.lifecycle.service import ClaimService
from claim_lifecycle.lifecycle.state_machine import allowed_actions

mcp = FastMCP("claim-lifecycle", json_response=True)


def _call(operation: Callable[[ClaimService], Any]) -> str:
    try:
        result = operation(ClaimService())
    except ClaimLifecycleError as e:
        return json.dumps(e.to_dict(), default=str)
    if isinstance(result, list):
        return json.dumps([item.model_dump(mode="json") for item in result])
    return json.dumps(result.model_dump(mode="json"))


@mcp.tool()
def create_claim(policy_no: str, conversation_id: str | None = None, actor: str = "AGENT") -> str:
    """Create a draft claim for a policy number."""
    return _call(lambda svc: svc.open_claim(policy_no, conversation_id, actor))


@mcp.tool()
def transition_claim(
    claim_id: str,
    action: str,
    actor: str = "AGENT",
    payload: dict[str, Any] | None = None,
) -> str:
    """Apply a lifecycle action (complete-intake, submit, start-review, request-info,
    resubmit, approve, deny, withdraw) with optional field updates."""
    return _call(lambda svc: svc.apply_action(claim_id, action, actor, payload))


@mcp.tool()
def amend_claim(claim_id: str, payload: dict[str, Any], actor: str = "AGENT") -> str:
    """Update accident/reporter details of a claim that is not closed or rejected."""
    return _call(lambda svc: svc.amend_claim(claim_id, payload, actor))


@mcp.tool()
def add_claim_attachment(claim_id: str, file_ref: str, actor: str = "AGENT") -> str:
    """Append a file reference to a claim's attachments."""
    return _call(lambda svc: svc.attach(claim_id, file_ref, actor))


@mcp.tool()
def get_claim(claim_id: str) -> str:
    """Fetch a claim with its full timeline."""
    return _call(lambda svc: svc.get_claim(claim_id))


@mcp.tool()
def list_claims(policy_no: str) -> str:
    """List claims recorded against a policy number, newest first."""
    return _call(lambda svc: svc.list_claims(policy_no))


@mcp.tool()
def get_claim_history(claim_id: str) -> str:
    """Return a claim's timeline events in append order."""
    return _call(lambda svc: svc.history(claim_id))


@mcp.tool()
def get_allowed_actions(claim_id: str) -> str:
    """List the actions allowed from a claim's current state."""
    try:
        case = ClaimService().get_claim(claim_id)
    except ClaimLifecycleError as e:
        return json.dumps(e.to_dict(), default=str)
    return json.dumps(
        {
            "claim_id": case.claim_id,
            "state": case.state.value,
            "allowed_actions": [a.value for a in allowed_actions(case.state)],
        }
    )


def main() -> None:
    """Run the MCP server with stdio transport (default)."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
