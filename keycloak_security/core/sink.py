"""Security configurators: where the computed policy table is handed off."""
from __future__ import annotations
import logging
from typing import Any, Protocol

from .models import SecurityConfiguration, SecurityConstraint

logger = logging.getLogger(__name__)

EXTENSION_KEY = "keycloak_security"


class SecurityConfigurator(Protocol):
    """Consumer of the policy table (typically a Keycloak adapter)."""

    def configure_security(
        self,
        json_config: str,
        context: Any,
        declared_roles: list[str],
        constraints: list[SecurityConstraint],
    ) -> None:
        ...


class FlaskSecurityConfigurator:
    """Default configurator: records each configuration on the Flask app.

    Records are stored in ``app.extensions["keycloak_security"]`` for the
    enforcement layer and the policy inspection endpoints to pick up.
    """

    def __init__(self, application: type):
        self.application = application

    def configure_security(self, json_config, context, declared_roles, constraints) -> None:
        configuration = SecurityConfiguration(
            application=self.application,
            json_config=json_config,
            declared_roles=list(declared_roles),
            constraints=list(constraints),
        )
        context.extensions.setdefault(EXTENSION_KEY, []).append(configuration)
        logger.info(
            "Security configured for %s: %d constraint(s), %d declared role(s)",
            self.application.__qualname__,
            len(configuration.constraints),
            len(configuration.declared_roles),
        )


def get_security_configurations(app) -> list[SecurityConfiguration]:
    """Get the configurations recorded on a Flask app."""
    return list(app.extensions.get(EXTENSION_KEY, []))
