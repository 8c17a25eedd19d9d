"""Unit tests for MCP server tools."""

import json

from claim_lifecycle.mcp_server.server import (
    add_claim_attachment,
    amend_claim,
    create_claim,
    get_allowed_actions,
    get_claim,
    get_claim_history,
    list_claims,
    transition_claim,
)

from conftest import COMPLETE_INTAKE, POLICY_NO


class TestMcpServerTools:
    """Test MCP server tool wrappers."""

    def test_create_claim(self):
        data = json.loads(create_claim(POLICY_NO, conversation_id="chat-42"))
        assert data["state"] == "DRAFT"
        assert data["conversation_id"] == "chat-42"
        assert data["timeline"][0]["actor"] == "AGENT"

    def test_create_claim_invalid_policy(self):
        data = json.loads(create_claim("99-invalid"))
        assert data["type"] == "PayloadValidationFailed"
        assert data["field"] == "policy_no"

    def test_transition_flow(self):
        claim_id = json.loads(create_claim(POLICY_NO))["claim_id"]
        ready = json.loads(transition_claim(claim_id, "complete-intake", "USER", COMPLETE_INTAKE))
        assert ready["state"] == "READY_TO_SUBMIT"
        submitted = json.loads(transition_claim(claim_id, "submit", "USER"))
        assert submitted["state"] == "SUBMITTED"

        allowed = json.loads(get_allowed_actions(claim_id))
        assert allowed == {
            "claim_id": claim_id,
            "state": "SUBMITTED",
            "allowed_actions": ["start-review", "withdraw"],
        }

    def test_transition_invalid(self):
        claim_id = json.loads(create_claim(POLICY_NO))["claim_id"]
        data = json.loads(transition_claim(claim_id, "approve"))
        assert data["type"] == "InvalidTransition"
        assert data["state"] == "DRAFT"

    def test_transition_terminal(self):
        claim_id = json.loads(create_claim(POLICY_NO))["claim_id"]
        transition_claim(claim_id, "withdraw", "USER")
        data = json.loads(transition_claim(claim_id, "complete-intake", "USER", COMPLETE_INTAKE))
        assert data["type"] == "TerminalStateViolation"
        assert data["state"] == "REJECTED"

    def test_amend_attach_and_history(self):
        claim_id = json.loads(create_claim(POLICY_NO))["claim_id"]
        amended = json.loads(amend_claim(claim_id, {"reporter_name": "Zhang San"}))
        assert amended["reporter_name"] == "Zhang San"
        attached = json.loads(add_claim_attachment(claim_id, "id-card.jpg"))
        assert attached["attachments"] == ["id-card.jpg"]
        history = json.loads(get_claim_history(claim_id))
        assert [e["action"] for e in history] == ["created", "details-updated", "attachment-added"]

    def test_get_claim_missing(self):
        data = json.loads(get_claim("CLM-UNKNOWN"))
        assert data["type"] == "ClaimNotFoundError"
        assert json.loads(get_allowed_actions("CLM-UNKNOWN"))["claim_id"] == "CLM-UNKNOWN"

    def test_list_claims(self):
        create_claim(POLICY_NO)
        claims = json.loads(list_claims(POLICY_NO))
        assert len(claims) == 1
        assert json.loads(list_claims("66000000")) == []
