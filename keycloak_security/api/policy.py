"""Read-only endpoints exposing the computed security policy table."""
from __future__ import annotations

from typing import Any

import yaml
from flask import Blueprint, Response, abort, current_app, jsonify, request

from keycloak_security.core.sink import get_security_configurations

bp = Blueprint("security_policy", __name__)

SUPPORTED_FORMATS = {"json", "yaml"}


def _policy_document() -> dict[str, Any]:
    configurations = get_security_configurations(current_app)
    return {"applications": [configuration.to_dict() for configuration in configurations]}


def _render(document: dict[str, Any]) -> Response:
    output_format = request.args.get("format", "json").lower()
    if output_format not in SUPPORTED_FORMATS:
        abort(400, description=f"Unsupported format: {output_format}")
    if output_format == "yaml":
        body = yaml.safe_dump(document, sort_keys=False)
        return Response(body, status=200, mimetype="application/yaml")
    return jsonify(document)


@bp.errorhandler(400)
def bad_request(error):
    """Handle 400 Bad Request errors."""
    return jsonify({"error": "Bad Request", "message": error.description}), 400


@bp.route("/security/constraints", methods=["GET"])
def list_constraints() -> Response:
    """Serve the constraint table of every configured application."""
    return _render(_policy_document())


@bp.route("/security/roles", methods=["GET"])
def list_declared_roles() -> Response:
    """Serve the declared roles of every configured application."""
    document = _policy_document()
    return _render({
        "applications": [
            {"application": entry["application"], "declared_roles": entry["declared_roles"]}
            for entry in document["applications"]
        ]
    })
