"""Core Policy Extraction Module

This module turns declarative markers on resource classes into the
security constraint table handed to a Keycloak adapter, independent of the
web framework.

Module Structure:
    - annotations.py     : Markers (path, verbs, roles_allowed, deny_all, ...)
    - models.py          : SecurityConstraint and transient descriptors
    - constraints.py     : Resource-to-constraint mapping
    - discovery.py       : Resource index reading and class loading
    - keycloak_config.py : Keycloak adapter JSON payload
    - sink.py            : Security configurators
    - exceptions.py      : Typed exceptions

Usage Pattern:
    These modules are NOT auto-imported. Import explicitly when needed:
        from keycloak_security.core import annotations as sec
        from keycloak_security.core.constraints import get_constraints
"""
