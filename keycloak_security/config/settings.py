"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from keycloak_security.core.exceptions import SecurityConfigurationError
from keycloak_security.core.keycloak_config import keycloak_json_property

SECRETS_DIR = Path("/run/secrets")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from {SECRETS_DIR}", file=sys.stderr)
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read {secret_file}: {e}", file=sys.stderr)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)", file=sys.stderr)
            return secret_value

    return None


def property_env_var(key: str) -> str:
    """Environment variable for a dotted property: app.security.x -> APP_SECURITY_X."""
    return key.replace(".", "_").replace("-", "_").upper()


def property_secret_name(key: str) -> str:
    """Secret file name for a dotted property: app.security.x -> app_security_x."""
    return key.replace(".", "_").replace("-", "_").lower()


@dataclass
class SecuritySettings:
    """Security extension configuration container."""
    # Namespace of configuration properties ("<namespace>.security.keycloak.json")
    config_namespace: str = "app"

    # Resource discovery
    resource_index_path: str = ""

    # Validation
    warn_undeclared_roles: bool = True

    # Dotted configuration properties
    properties: dict[str, str] = field(default_factory=dict)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a configuration property."""
        value = self.properties.get(key)
        if value is None or value == "":
            return default
        return value

    @property
    def keycloak_json(self) -> Optional[str]:
        return self.get(keycloak_json_property(self.config_namespace))


def _parse_bool(var_name: str, default: str) -> bool:
    raw = os.environ.get(var_name, default).strip().lower()
    if raw in {"true", "1", "yes"}:
        return True
    if raw in {"false", "0", "no"}:
        return False
    raise SecurityConfigurationError(var_name, f"expected true/false, got {raw!r}")


def load_settings() -> SecuritySettings:
    """Load security settings from environment and /run/secrets."""
    config_namespace = os.environ.get("SECURITY_CONFIG_NAMESPACE", "app").strip()
    if not config_namespace:
        raise SecurityConfigurationError("SECURITY_CONFIG_NAMESPACE", "namespace must not be empty")

    resource_index_path = os.environ.get("SECURITY_RESOURCE_INDEX", "").strip()
    warn_undeclared_roles = _parse_bool("SECURITY_WARN_UNDECLARED_ROLES", "true")

    # The adapter JSON usually carries a client secret, so it may come from
    # a Docker secret as well as from the environment.
    properties: dict[str, str] = {}
    json_key = keycloak_json_property(config_namespace)
    keycloak_json = _load_secret_from_file(property_secret_name(json_key), property_env_var(json_key))
    if keycloak_json:
        properties[json_key] = keycloak_json

    index_label = resource_index_path or "<none>"
    print(f"[settings] namespace={config_namespace}; resource_index={index_label}", file=sys.stderr)

    return SecuritySettings(
        config_namespace=config_namespace,
        resource_index_path=resource_index_path,
        warn_undeclared_roles=warn_undeclared_roles,
        properties=properties,
    )
