"""Print the security policy table of an application without starting Flask.

Example:
    python scripts/dump_constraints.py --application shop.rest:RestApplication \
        --index build/resources.idx --format yaml
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from keycloak_security.config import load_settings
from keycloak_security.core.exceptions import SecurityError
from keycloak_security.core.keycloak_config import to_json_object
from keycloak_security.extension import build_security_configuration


def redact(keycloak_json: dict) -> dict:
    """Mask client credentials in the adapter JSON."""
    redacted = dict(keycloak_json)
    if "credentials" in redacted:
        redacted["credentials"] = "***"
    return redacted


def render(document: dict, output_format: str) -> str:
    if output_format == "yaml":
        return yaml.safe_dump(document, sort_keys=False)
    return json.dumps(document, indent=2)


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Dump declarative security constraints")
    parser.add_argument("--application", required=True, action="append",
                        help="Application class as module:Class (repeatable)")
    parser.add_argument("--index", help="Resource index file (overrides SECURITY_RESOURCE_INDEX)")
    parser.add_argument("--format", choices=["json", "yaml"], default="json")
    parser.add_argument("--verbose", action="store_true", help="Log every constraint")
    parser.add_argument("--show-secrets", action="store_true", help="Do not mask adapter credentials")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    if args.index:
        settings.resource_index_path = args.index

    applications = []
    for reference in args.application:
        try:
            configuration = build_security_configuration(reference, settings)
        except SecurityError as exc:
            print(f"[dump_constraints] ✗ {exc}", file=sys.stderr)
            return 1
        entry = configuration.to_dict()
        keycloak_json = to_json_object(configuration.json_config)
        entry["keycloak"] = keycloak_json if args.show_secrets else redact(keycloak_json)
        applications.append(entry)

    print(render({"applications": applications}, args.format))
    return 0


if __name__ == "__main__":
    sys.exit(main())
