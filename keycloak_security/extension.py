"""Flask extension that computes and installs the declarative security policy.

Usage:
    from flask import Flask
    from keycloak_security import KeycloakSecurity

    security = KeycloakSecurity()

    def create_app() -> Flask:
        app = Flask(__name__)
        security.init_app(app, applications=[RestApplication])
        return app

init_app() is the startup trigger: for every registered application root it
collects declared roles, builds the constraint list and the Keycloak JSON
payload, then makes exactly one configure_security() call.

Resource classes of an application are taken from, in order:
    1. the ``resources`` argument of the extension
    2. a ``resources`` attribute on the application class
    3. the resource index file (SECURITY_RESOURCE_INDEX)
"""
from __future__ import annotations
import logging
from typing import Any, Iterable, Optional, Union

from keycloak_security.config import SecuritySettings, load_settings
from keycloak_security.core.constraints import (
    get_constraints,
    get_declared_roles,
    undeclared_roles,
    unwrap_proxy,
)
from keycloak_security.core.discovery import discover_resources, load_resource
from keycloak_security.core.exceptions import SecurityConfigurationError
from keycloak_security.core.keycloak_config import build_keycloak_json
from keycloak_security.core.models import SecurityConfiguration
from keycloak_security.core.sink import EXTENSION_KEY, FlaskSecurityConfigurator, SecurityConfigurator

logger = logging.getLogger(__name__)

ApplicationRef = Union[type, str]


def resolve_application(reference: ApplicationRef) -> type:
    """Get an application class from a class or a "module:Class" reference."""
    if isinstance(reference, str):
        try:
            reference = load_resource(reference)
        except (ImportError, AttributeError) as exc:
            raise SecurityConfigurationError(reference, f"cannot load application: {exc}") from exc
    if not isinstance(reference, type):
        raise SecurityConfigurationError(repr(reference), "application must be a class")
    return unwrap_proxy(reference)


def resources_for(application: type, settings: SecuritySettings, resources: Optional[Iterable[type]] = None) -> list[type]:
    """Get the resource classes of an application."""
    if resources is not None:
        return list(resources)
    declared = vars(application).get("resources")
    if declared is not None:
        return list(declared)
    return discover_resources(application, settings.resource_index_path)


def build_security_configuration(
    application: ApplicationRef,
    settings: SecuritySettings,
    resources: Optional[Iterable[type]] = None,
) -> SecurityConfiguration:
    """Compute roles, constraints and adapter JSON for one application."""
    application = resolve_application(application)
    declared_roles = get_declared_roles(application)
    constraints = get_constraints(application, resources_for(application, settings, resources))

    if settings.warn_undeclared_roles and declared_roles:
        missing = undeclared_roles(declared_roles, constraints)
        if missing:
            logger.warning(
                "%s uses undeclared role(s): %s",
                application.__qualname__,
                ", ".join(missing),
            )

    return SecurityConfiguration(
        application=application,
        json_config=build_keycloak_json(application, settings),
        declared_roles=declared_roles,
        constraints=constraints,
    )


class KeycloakSecurity:
    """Declarative Keycloak security for Flask applications."""

    def __init__(
        self,
        app=None,
        applications: Optional[Iterable[ApplicationRef]] = None,
        resources: Optional[Iterable[type]] = None,
        configurator: Optional[SecurityConfigurator] = None,
        settings: Optional[SecuritySettings] = None,
    ):
        self.applications: list[ApplicationRef] = list(applications or [])
        self.resources = list(resources) if resources is not None else None
        self.configurator = configurator
        self.settings = settings
        if app is not None:
            self.init_app(app)

    def register_application(self, application: ApplicationRef) -> ApplicationRef:
        """Register an application root. Usable as a class decorator."""
        self.applications.append(application)
        return application

    def init_app(self, app, applications: Optional[Iterable[ApplicationRef]] = None) -> None:
        """Configure security for every registered application on app.

        applications only apply to this app; registrations made on the
        extension apply to every app it is initialized on.
        """
        settings = self.settings or load_settings()

        references = (
            self.applications
            + list(applications or [])
            + list(app.config.get("SECURITY_APPLICATIONS", []))
        )
        app.extensions.setdefault(EXTENSION_KEY, [])

        for reference in references:
            self._configure(app, resolve_application(reference), settings)

        logger.info("Keycloak security initialized for %d application(s)", len(references))

    def _configure(self, app, application: type, settings: SecuritySettings) -> None:
        configuration = build_security_configuration(application, settings, self.resources)
        configurator = self.configurator or FlaskSecurityConfigurator(application)
        configurator.configure_security(
            configuration.json_config,
            app,
            configuration.declared_roles,
            configuration.constraints,
        )
