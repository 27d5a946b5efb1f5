"""
Tests for the compose helpers and the scripts/send_email.py CLI.

The CLI is loaded from its file path; httpx calls are patched so nothing
leaves the process.
"""

import base64
import importlib.util
import json
from pathlib import Path
from unittest.mock import Mock, patch

import httpx
import pytest

from emailer.models.email import SendEmailRequest
from emailer.services.composer import (
    DEFAULT_CONTENT_TYPE,
    attachment_from_bytes,
    attachment_from_path,
    build_send_payload,
    detect_content_type,
    redact_payload,
)

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "send_email.py"


def _load_cli():
    spec = importlib.util.spec_from_file_location("send_email_cli", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _base_kwargs(**overrides) -> dict:
    kwargs = {
        "from_name": "A",
        "from_email": "a@x.com",
        "to_name": "B",
        "to_email": "b@x.com",
        "subject": "S",
        "body": "Bd",
    }
    kwargs.update(overrides)
    return kwargs


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------

class TestAttachments:

    def test_bytes_are_base64_encoded_with_raw_size(self):
        attachment = attachment_from_bytes(b"Test file content", "test.txt")

        assert attachment["filename"] == "test.txt"
        assert attachment["content_type"] == "text/plain"
        assert attachment["size"] == 17
        assert base64.b64decode(attachment["file_data"]) == b"Test file content"

    def test_explicit_content_type_wins(self):
        attachment = attachment_from_bytes(b"x", "data.bin", content_type="image/png")
        assert attachment["content_type"] == "image/png"

    def test_unknown_extension_falls_back(self):
        assert detect_content_type("blob.zzz-unknown") == DEFAULT_CONTENT_TYPE
        assert detect_content_type("noextension") == DEFAULT_CONTENT_TYPE

    def test_from_path(self, tmp_path):
        path = tmp_path / "report.csv"
        path.write_bytes(b"col1,col2\n100,200")

        attachment = attachment_from_path(path)

        assert attachment["filename"] == "report.csv"
        assert attachment["content_type"] == "text/csv"
        assert attachment["size"] == len(b"col1,col2\n100,200")

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            attachment_from_path(tmp_path / "missing.pdf")


# ---------------------------------------------------------------------------
# Payload building
# ---------------------------------------------------------------------------

class TestBuildSendPayload:

    def test_minimal_payload_validates(self):
        payload = build_send_payload(**_base_kwargs())

        assert payload["from"] == {"name": "A", "email": "a@x.com"}
        assert payload["message_format"] == "plain"
        assert payload["attachments"] == []
        assert "reply_to" not in payload
        assert "cc" not in payload
        assert "bcc" not in payload
        SendEmailRequest.model_validate(payload)

    def test_filled_groups_included(self):
        payload = build_send_payload(**_base_kwargs(
            reply_to_name="R", reply_to_email="r@x.com",
            cc_name="C", cc_email="c@x.com",
        ))

        assert payload["reply_to"] == {"name": "R", "email": "r@x.com"}
        assert payload["cc"] == {"name": "C", "email": "c@x.com"}
        assert "bcc" not in payload

    def test_half_filled_group_passed_through_for_api_to_reject(self):
        payload = build_send_payload(**_base_kwargs(bcc_email="hidden@x.com"))

        assert payload["bcc"] == {"name": "", "email": "hidden@x.com"}
        with pytest.raises(Exception):
            SendEmailRequest.model_validate(payload)

    def test_attachments_included(self):
        attachment = attachment_from_bytes(b"abc", "a.txt")
        payload = build_send_payload(**_base_kwargs(attachments=[attachment]))

        request = SendEmailRequest.model_validate(payload)
        assert request.attachments[0].size == 3

    def test_redact_hides_file_data(self):
        payload = build_send_payload(**_base_kwargs(
            attachments=[attachment_from_bytes(b"secret bytes", "s.txt")],
        ))

        display = redact_payload(payload)

        assert display["attachments"][0]["file_data"] == "<base64-encoded, 12 bytes>"
        # Original payload untouched
        assert payload["attachments"][0]["file_data"] != display["attachments"][0]["file_data"]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestSendEmailCli:

    SEND_ARGS = [
        "send",
        "--from-name", "A", "--from", "a@x.com",
        "--to-name", "B", "--to", "b@x.com",
        "--subject", "S", "--body", "Bd",
    ]

    def _response(self, status_code: int, body) -> Mock:
        response = Mock(spec=httpx.Response)
        response.status_code = status_code
        response.is_success = 200 <= status_code < 300
        response.json.return_value = body
        response.text = json.dumps(body)
        return response

    def test_dry_run_prints_payload_without_sending(self, capsys):
        cli = _load_cli()

        with patch.object(cli.httpx, "post") as mock_post:
            exit_code = cli.main(self.SEND_ARGS + ["--dry-run"])

        assert exit_code == 0
        mock_post.assert_not_called()
        assert "[DRY RUN]" in capsys.readouterr().out

    def test_send_posts_payload_with_attachment(self, tmp_path):
        cli = _load_cli()
        attachment = tmp_path / "notes.txt"
        attachment.write_bytes(b"hello")

        with patch.object(cli.httpx, "post") as mock_post:
            mock_post.return_value = self._response(
                200, {"success": True, "message": "Email sent successfully", "email_id": 1}
            )
            exit_code = cli.main(
                ["--url", "http://api.local/"] + self.SEND_ARGS + ["--attach", str(attachment)]
            )

        assert exit_code == 0
        url = mock_post.call_args[0][0]
        payload = mock_post.call_args[1]["json"]
        assert url == "http://api.local/api/emails/"
        assert payload["attachments"][0]["filename"] == "notes.txt"
        assert payload["attachments"][0]["size"] == 5

    def test_failed_send_exits_non_zero(self):
        cli = _load_cli()

        with patch.object(cli.httpx, "post") as mock_post:
            mock_post.return_value = self._response(
                500, {"success": False, "message": "Failed to send email"}
            )
            exit_code = cli.main(self.SEND_ARGS)

        assert exit_code == 1

    def test_missing_attachment_exits_non_zero(self, tmp_path):
        cli = _load_cli()

        with patch.object(cli.httpx, "post") as mock_post:
            exit_code = cli.main(self.SEND_ARGS + ["--attach", str(tmp_path / "nope.pdf")])

        assert exit_code == 1
        mock_post.assert_not_called()

    def test_list_passes_pagination(self):
        cli = _load_cli()

        with patch.object(cli.httpx, "get") as mock_get:
            mock_get.return_value = self._response(200, [])
            exit_code = cli.main(["list", "--limit", "3", "--offset", "2"])

        assert exit_code == 0
        assert mock_get.call_args[1]["params"] == {"limit": 3, "offset": 2}

    def test_show_missing_email_exits_non_zero(self):
        cli = _load_cli()

        with patch.object(cli.httpx, "get") as mock_get:
            mock_get.return_value = self._response(200, None)
            exit_code = cli.main(["show", "999"])

        assert exit_code == 1

    def test_connection_error_exits_non_zero(self, capsys):
        cli = _load_cli()

        with patch.object(cli.httpx, "get", side_effect=httpx.ConnectError("refused")):
            exit_code = cli.main(["list"])

        assert exit_code == 1
        assert "Could not connect" in capsys.readouterr().err
