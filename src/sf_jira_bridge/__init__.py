"""Salesforce ⇄ Jira bridge.

Creates Jira issues from Salesforce requests and propagates Jira status
changes back onto the linked ``Jira_Sync__c`` records.
"""

import argparse
import logging
import os
import sys

__version__ = "0.1.0"

logger = logging.getLogger("sf-jira-bridge")


def main(argv: list[str] | None = None) -> int:
    """Serve the bridge over HTTP (``sf-jira-bridge`` console script)."""
    parser = argparse.ArgumentParser(prog="sf-jira-bridge", description=__doc__)
    parser.add_argument("--host", default=os.getenv("BRIDGE_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("BRIDGE_PORT", "8000")))
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument(
        "--generate-key",
        action="store_true",
        help="print a new BRIDGE_ENCRYPT_KEY value and exit",
    )
    args = parser.parse_args(argv)

    if args.generate_key:
        from cryptography.fernet import Fernet

        sys.stdout.write(Fernet.generate_key().decode() + "\n")
        return 0

    import uvicorn

    from sf_jira_bridge.servers.main import create_app
    from sf_jira_bridge.utils.environment import is_debug_mode
    from sf_jira_bridge.utils.logging import setup_logging

    setup_logging("DEBUG" if args.verbose or is_debug_mode() else None)
    logger.info("Starting bridge on %s:%s", args.host, args.port)
    uvicorn.run(create_app(), host=args.host, port=args.port, log_config=None)
    return 0


__all__ = ["main", "__version__"]
