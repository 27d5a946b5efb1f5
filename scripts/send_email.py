#!/usr/bin/env python3
"""
Compose, send and browse emails through the Emailer backend.

Usage
-----
# Send a plain-text email
python scripts/send_email.py send --from-name Alice --from alice@example.com \
    --to-name Bob --to bob@example.com --subject "Hello" --body "Hi Bob"

# HTML body from a file, with cc and two attachments
python scripts/send_email.py send --from-name Alice --from alice@example.com \
    --to-name Bob --to bob@example.com --subject "Report" \
    --body-file report.html --format html \
    --cc-name Carol --cc carol@example.com \
    --attach q1.pdf --attach q1.csv

# Print the payload without sending
python scripts/send_email.py send ... --dry-run

# Sent-email history, newest first
python scripts/send_email.py list --limit 10 --offset 0

# One email with its attachments
python scripts/send_email.py show 42

Environment / .env
------------------
EMAILER_URL   Backend base URL (default: http://localhost:8000).
              Overridden by --url.
"""

import argparse
import json
import os
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv

from emailer.services.composer import (
    attachment_from_path,
    build_send_payload,
    redact_payload,
)

# scripts/ lives one level below the project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_URL = "http://localhost:8000"


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if response.is_success else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


def _exit_code(response: httpx.Response) -> int:
    if not response.is_success:
        return 1
    try:
        body = response.json()
    except ValueError:
        return 0
    if isinstance(body, dict) and body.get("success") is False:
        return 1
    return 0


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def _cmd_send(args: argparse.Namespace, base_url: str) -> int:
    if args.body_file:
        body_path = Path(args.body_file)
        if not body_path.exists():
            print(f"ERROR: File not found: {body_path}", file=sys.stderr)
            return 1
        body = body_path.read_text()
    else:
        body = args.body or ""

    attachments = []
    for path in args.attach:
        if not Path(path).exists():
            print(f"ERROR: File not found: {path}", file=sys.stderr)
            return 1
        attachment = attachment_from_path(path)
        print(f"Attaching file: {path} ({attachment['size']:,} bytes, {attachment['content_type']})")
        attachments.append(attachment)

    payload = build_send_payload(
        from_name=args.from_name,
        from_email=args.from_email,
        to_name=args.to_name,
        to_email=args.to_email,
        subject=args.subject,
        body=body,
        message_format=args.format,
        reply_to_name=args.reply_to_name,
        reply_to_email=args.reply_to_email,
        cc_name=args.cc_name,
        cc_email=args.cc_email,
        bcc_name=args.bcc_name,
        bcc_email=args.bcc_email,
        attachments=attachments,
    )

    endpoint = f"{base_url}/api/emails/"

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(redact_payload(payload), indent=2))
        return 0

    response = httpx.post(endpoint, json=payload, timeout=30)
    _print_response(response)
    return _exit_code(response)


def _cmd_list(args: argparse.Namespace, base_url: str) -> int:
    response = httpx.get(
        f"{base_url}/api/emails/",
        params={"limit": args.limit, "offset": args.offset},
        timeout=30,
    )
    _print_response(response)
    return _exit_code(response)


def _cmd_show(args: argparse.Namespace, base_url: str) -> int:
    response = httpx.get(f"{base_url}/api/emails/{args.email_id}", timeout=30)
    _print_response(response)
    if response.is_success and response.json() is None:
        print(f"Email {args.email_id} not found", file=sys.stderr)
        return 1
    return _exit_code(response)


_COMMANDS = {
    "send": _cmd_send,
    "list": _cmd_list,
    "show": _cmd_show,
}


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="send_email.py",
        description="Compose, send and browse emails through the Emailer backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_email.py send --from-name A --from a@x.com \\
                  --to-name B --to b@x.com --subject S --body Bd
              python scripts/send_email.py list --limit 3
              python scripts/send_email.py show 1
        """),
    )
    parser.add_argument(
        "--url",
        default=os.getenv("EMAILER_URL", DEFAULT_URL),
        help=f"Backend base URL (default: $EMAILER_URL or {DEFAULT_URL})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    send = subparsers.add_parser("send", help="Compose and send an email")
    send.add_argument("--from-name", required=True)
    send.add_argument("--from", dest="from_email", required=True)
    send.add_argument("--to-name", required=True)
    send.add_argument("--to", dest="to_email", required=True)
    send.add_argument("--reply-to-name", default=None)
    send.add_argument("--reply-to", dest="reply_to_email", default=None)
    send.add_argument("--cc-name", default=None)
    send.add_argument("--cc", dest="cc_email", default=None)
    send.add_argument("--bcc-name", default=None)
    send.add_argument("--bcc", dest="bcc_email", default=None)
    send.add_argument("--subject", required=True)
    body_group = send.add_mutually_exclusive_group()
    body_group.add_argument("--body", default=None, help="Message body text")
    body_group.add_argument("--body-file", default=None, metavar="PATH", help="Read the body from a file")
    send.add_argument(
        "--format",
        default="plain",
        choices=["plain", "html", "rich"],
        help="How the body should be rendered (default: plain)",
    )
    send.add_argument(
        "--attach",
        action="append",
        default=[],
        metavar="PATH",
        help="File to attach; repeat for several files",
    )
    send.add_argument("--dry-run", action="store_true", help="Print the payload without sending it.")

    list_cmd = subparsers.add_parser("list", help="List sent emails, newest first")
    list_cmd.add_argument("--limit", type=int, default=50)
    list_cmd.add_argument("--offset", type=int, default=0)

    show = subparsers.add_parser("show", help="Show one email with its attachments")
    show.add_argument("email_id", type=int)

    return parser


def main(argv=None) -> int:
    load_dotenv(PROJECT_ROOT / ".env")
    load_dotenv(PROJECT_ROOT / "backend" / ".env")

    args = build_parser().parse_args(argv)
    base_url = args.url.rstrip("/")

    try:
        return _COMMANDS[args.command](args, base_url)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {base_url}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && uvicorn emailer.main:app --reload",
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
