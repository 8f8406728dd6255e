"""Keycloak adapter JSON payload assembly."""
from __future__ import annotations
import json
import logging
from typing import Any, Optional

from .annotations import Keycloak, find_marker
from .constraints import unwrap_proxy

logger = logging.getLogger(__name__)

KEYCLOAK_JSON_PROPERTY = "{namespace}.security.keycloak.json"


def to_json_object(text: Optional[str]) -> dict[str, Any]:
    """Parse a JSON object; anything malformed or non-object yields {}."""
    try:
        value = json.loads(text or "{}")
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed Keycloak JSON configuration")
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring Keycloak JSON configuration that is not an object")
        return {}
    return value


def keycloak_json_property(namespace: str) -> str:
    """Name of the configuration property holding the adapter JSON."""
    return KEYCLOAK_JSON_PROPERTY.format(namespace=namespace)


def build_keycloak_json(application_type: type, settings) -> str:
    """Build the adapter JSON for an application.

    The base document comes from the application's keycloak marker or,
    when it has no embedded JSON, from the namespaced configuration
    property. auth-server-url and ssl-required from the marker are laid
    on top.
    """
    marker = find_marker(unwrap_proxy(application_type), Keycloak) or Keycloak()

    if marker.json:
        document = to_json_object(marker.json)
    else:
        document = to_json_object(settings.keycloak_json)

    if marker.auth_server_url:
        document["auth-server-url"] = marker.auth_server_url
    if marker.ssl_required:
        document["ssl-required"] = marker.ssl_required

    return json.dumps(document, separators=(",", ":"))
