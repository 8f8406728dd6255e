"""Declarative Keycloak security for Flask applications.

To use the Flask extension:
    from keycloak_security import KeycloakSecurity

To declare security on resources:
    from keycloak_security.core import annotations as sec
"""
from .extension import KeycloakSecurity, build_security_configuration

__all__ = ["KeycloakSecurity", "build_security_configuration"]
