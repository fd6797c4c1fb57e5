"""bridge_call.py

Operator helper for a running Salesforce-Jira bridge.

Key features
------------
* ``config-get`` prints the public configuration (the secret is never returned)
* ``config-set`` stores connection settings; the client secret is read from
  ``SF_CLIENT_SECRET`` so it never lands in shell history
* ``create-issue`` sends a ``CREATE_ISSUE`` action the way Salesforce does
* ``--env-file`` loads KEY=VALUE pairs before anything else, so
  ``BRIDGE_URL`` and ``BRIDGE_ADMIN_TOKEN`` may live there
* Logs **field names only** for request bodies – values remain hidden

Example
-------
    uv run python scripts/bridge_call.py config-get
    SF_CLIENT_SECRET=... uv run python scripts/bridge_call.py config-set \
        --instance-url https://acme.my.salesforce.com --client-id 3MVG9...
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict

import requests

# --------------------------------------------------------------------------- #
# Constants
# --------------------------------------------------------------------------- #
DEFAULT_BRIDGE_URL = "http://localhost:8000"
DEFAULT_ENV_FILE = Path("scripts/.env.script-helpers")


# --------------------------------------------------------------------------- #
# Environment helpers
# --------------------------------------------------------------------------- #
def _load_env_file(env_path: Path | None) -> None:
    """Load KEY=VALUE pairs from a .env style file into *os.environ*."""
    if env_path is None or not env_path.exists():
        return

    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        if key and key not in os.environ:
            os.environ[key] = val


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #
def _call(method: str, url: str, body: Dict[str, Any] | None, timeout: int) -> requests.Response:
    if body is not None:
        sys.stderr.write(f"{method} {url} fields={sorted(body)}\n")
    headers = {}
    token = os.getenv("BRIDGE_ADMIN_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return requests.request(method, url, json=body, headers=headers, timeout=timeout)


def _config_set_body(args: argparse.Namespace) -> Dict[str, Any]:
    secret = os.getenv("SF_CLIENT_SECRET")
    if not secret:
        raise SystemExit("SF_CLIENT_SECRET must be set for config-set")
    body: Dict[str, Any] = {
        "instanceUrl": args.instance_url,
        "clientId": args.client_id,
        "clientSecret": secret,
    }
    if args.project_key:
        body["jiraProjectKey"] = args.project_key
    if args.jira_url:
        body["jiraInstanceUrl"] = args.jira_url
    return body


def _create_issue_body(args: argparse.Namespace) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "summary": args.summary,
        "description": args.description,
        "issueType": args.issue_type,
    }
    if args.record_id:
        data["recordId"] = args.record_id
    return {"action": "CREATE_ISSUE", "data": data}


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--url", default=None, help="bridge base URL (default: $BRIDGE_URL)")
    parser.add_argument("--env-file", type=Path, default=DEFAULT_ENV_FILE)
    parser.add_argument("--timeout", type=int, default=60)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("config-get")

    cfg = sub.add_parser("config-set")
    cfg.add_argument("--instance-url", required=True)
    cfg.add_argument("--client-id", required=True)
    cfg.add_argument("--project-key")
    cfg.add_argument("--jira-url")

    issue = sub.add_parser("create-issue")
    issue.add_argument("--summary", required=True)
    issue.add_argument("--description", required=True)
    issue.add_argument("--issue-type", default="Task")
    issue.add_argument("--record-id")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _load_env_file(args.env_file)
    base = (args.url or os.getenv("BRIDGE_URL") or DEFAULT_BRIDGE_URL).rstrip("/")

    if args.command == "config-get":
        resp = _call("GET", f"{base}/config", None, args.timeout)
    elif args.command == "config-set":
        resp = _call("POST", f"{base}/config", _config_set_body(args), args.timeout)
    else:
        resp = _call("POST", f"{base}/salesforce", _create_issue_body(args), args.timeout)

    try:
        print(json.dumps(resp.json(), indent=2))
    except ValueError:
        print(resp.text)
    return 0 if resp.ok else 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
