"""Unit tests for CLI (main.py) functions and edge cases."""

import json
import sys
from unittest.mock import patch

import pytest

from claim_lifecycle.main import _split_args, _usage, main

from conftest import COMPLETE_INTAKE, POLICY_NO


def _run_cli(capsys, *args):
    with patch.object(sys, "argv", ["claim-lifecycle", *args]):
        main()
    return json.loads(capsys.readouterr().out)


def _run_cli_error(capsys, *args):
    with patch.object(sys, "argv", ["claim-lifecycle", *args]):
        with pytest.raises(SystemExit) as exc:
            main()
    assert exc.value.code == 1
    return capsys.readouterr().err


class TestUsage:
    def test_usage_lists_commands(self):
        result = _usage()
        for command in ("create", "transition", "amend", "attach", "status", "history", "list"):
            assert command in result


class TestSplitArgs:
    def test_options_and_flags(self):
        positional, values, flags = _split_args(
            ["create", "6512", "--conversation", "conv-1", "--json"]
        )
        assert positional == ["create", "6512"]
        assert values == {"--conversation": "conv-1"}
        assert flags == {"--json"}

    def test_option_without_value_exits(self):
        with pytest.raises(SystemExit):
            _split_args(["create", "--actor"])


class TestCommands:
    def test_no_args_prints_usage(self, capsys):
        err = _run_cli_error(capsys)
        assert "Usage" in err

    def test_unknown_command(self, capsys):
        err = _run_cli_error(capsys, "explode")
        assert "Unknown command" in err

    def test_missing_argument(self, capsys):
        err = _run_cli_error(capsys, "transition", "CLM-1")
        assert "requires 2" in err

    def test_create_status_history(self, capsys):
        created = _run_cli(capsys, "create", POLICY_NO, "--conversation", "conv-7")
        assert created["state"] == "DRAFT"
        assert created["conversation_id"] == "conv-7"

        status = _run_cli(capsys, "status", created["claim_id"])
        assert status["claim_id"] == created["claim_id"]

        history = _run_cli(capsys, "history", created["claim_id"])
        assert [e["action"] for e in history] == ["created"]

    def test_transition_with_payload_file(self, capsys, tmp_path):
        created = _run_cli(capsys, "create", POLICY_NO)
        payload = tmp_path / "intake.json"
        payload.write_text(json.dumps(COMPLETE_INTAKE), encoding="utf-8")
        ready = _run_cli(
            capsys, "transition", created["claim_id"], "complete-intake", str(payload),
            "--actor", "AGENT",
        )
        assert ready["state"] == "READY_TO_SUBMIT"
        assert ready["timeline"][-1]["actor"] == "AGENT"

        actions = _run_cli(capsys, "actions", created["claim_id"])
        assert actions["allowed_actions"] == ["submit", "withdraw"]

    def test_invalid_transition_reports_error(self, capsys):
        created = _run_cli(capsys, "create", POLICY_NO)
        err = _run_cli_error(capsys, "transition", created["claim_id"], "submit")
        data = json.loads(err)
        assert data["type"] == "InvalidTransition"
        assert data["state"] == "DRAFT"
        assert data["action"] == "submit"

    def test_amend_and_attach(self, capsys, tmp_path):
        created = _run_cli(capsys, "create", POLICY_NO)
        payload = tmp_path / "details.json"
        payload.write_text(json.dumps({"accident_location": "Hangzhou"}), encoding="utf-8")
        amended = _run_cli(capsys, "amend", created["claim_id"], str(payload))
        assert amended["accident_location"] == "Hangzhou"
        attached = _run_cli(capsys, "attach", created["claim_id"], "photo.jpg")
        assert attached["attachments"] == ["photo.jpg"]

    def test_list(self, capsys):
        _run_cli(capsys, "create", POLICY_NO)
        _run_cli(capsys, "create", POLICY_NO)
        claims = _run_cli(capsys, "list", POLICY_NO)
        assert len(claims) == 2

    def test_status_missing_claim(self, capsys):
        err = _run_cli_error(capsys, "status", "CLM-NOPE")
        assert json.loads(err)["type"] == "ClaimNotFoundError"

    def test_create_invalid_policy(self, capsys):
        err = _run_cli_error(capsys, "create", "12345")
        assert json.loads(err)["field"] == "policy_no"

    def test_payload_file_not_found(self, capsys, tmp_path):
        created = _run_cli(capsys, "create", POLICY_NO)
        err = _run_cli_error(
            capsys, "transition", created["claim_id"], "complete-intake",
            str(tmp_path / "missing.json"),
        )
        assert "File not found" in err

    def test_payload_file_invalid_json(self, capsys, tmp_path):
        created = _run_cli(capsys, "create", POLICY_NO)
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        err = _run_cli_error(capsys, "amend", created["claim_id"], str(bad))
        assert "Invalid JSON" in err
