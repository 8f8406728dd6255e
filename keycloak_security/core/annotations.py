"""Declarative security and routing markers.

Markers are attached with decorators and read back by the constraint
extractor. They are stored on the decorated object itself (never looked up
through base classes), in the order they appear in source, top to bottom.

Usage:
    from keycloak_security.core import annotations as sec

    @sec.application_path("/api")
    @sec.declare_roles("admin", "user")
    class RestApplication:
        pass

    @sec.path("orders")
    @sec.roles_allowed("admin")
    class OrderResource:

        @sec.get
        def list_orders(self):
            ...

        @sec.path("{id}")
        @sec.permit_all
        def get_order(self, order_id):
            ...
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from .exceptions import MarkerError

MARKERS_ATTR = "__security_markers__"

T = TypeVar("T")


# ─────────────────────────────────────────────────────────────────────────────
# Marker Types
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ApplicationPath:
    """Root path of every resource exposed by an application."""
    value: str


@dataclass(frozen=True)
class Path:
    """Path of a resource class, or path suffix of an operation."""
    value: str


@dataclass(frozen=True)
class DeclareRoles:
    """Roles known to an application."""
    roles: tuple[str, ...]


@dataclass(frozen=True)
class DenyAll:
    """No role may invoke the target."""


@dataclass(frozen=True)
class PermitAll:
    """Any caller may invoke the target."""


@dataclass(frozen=True)
class RolesAllowed:
    """Only the listed roles may invoke the target."""
    roles: tuple[str, ...]


@dataclass(frozen=True)
class Keycloak:
    """Keycloak adapter configuration embedded on the application class."""
    json: str = ""
    auth_server_url: str = ""
    ssl_required: str = ""


@dataclass(frozen=True)
class HttpMethod:
    """HTTP verb marker. Instances are decorators themselves.

    Example:
        propfind = http_method("PROPFIND")

        @propfind
        def properties(self):
            ...
    """
    value: str

    def __call__(self, target: T) -> T:
        return _attach(target, self)


SECURITY_MARKERS = (DenyAll, RolesAllowed, PermitAll)


# ─────────────────────────────────────────────────────────────────────────────
# Marker Storage
# ─────────────────────────────────────────────────────────────────────────────
def _attach(target: T, marker: Any) -> T:
    """Record marker on target, keeping top-to-bottom decorator order."""
    holder = target
    if isinstance(holder, (staticmethod, classmethod)):
        holder = holder.__func__
    # Decorators run bottom-up, so each new marker goes first. A fresh tuple
    # is stored because functools.wraps shares __dict__ entries with the
    # wrapped function.
    existing = getattr(holder, "__dict__", {}).get(MARKERS_ATTR, ())
    setattr(holder, MARKERS_ATTR, (marker,) + tuple(existing))
    return target


def get_markers(target: Any) -> tuple:
    """Get markers declared directly on target, in source order."""
    if isinstance(target, (staticmethod, classmethod)):
        target = target.__func__
    namespace = getattr(target, "__dict__", None)
    if namespace is None:
        return ()
    return tuple(namespace.get(MARKERS_ATTR, ()))


def find_markers(target: Any, marker_type: type) -> list:
    """Get all markers of marker_type declared on target."""
    return [marker for marker in get_markers(target) if isinstance(marker, marker_type)]


def find_marker(target: Any, marker_type: type) -> Optional[Any]:
    """Get the first marker of marker_type declared on target, or None."""
    found = find_markers(target, marker_type)
    return found[0] if found else None


# ─────────────────────────────────────────────────────────────────────────────
# Argument Validation
# ─────────────────────────────────────────────────────────────────────────────
def _require_str(value: Any, marker_name: str) -> str:
    if not isinstance(value, str):
        raise MarkerError(f"{marker_name} expects a string, got {type(value).__name__}")
    return value


def _role_names(roles: tuple, marker_name: str) -> tuple[str, ...]:
    """Flatten role arguments: roles_allowed("a", "b") or roles_allowed(["a", "b"])."""
    if len(roles) == 1 and isinstance(roles[0], (list, tuple, set, frozenset)):
        roles = roles[0]
    return tuple(_require_str(role, marker_name) for role in roles)


# ─────────────────────────────────────────────────────────────────────────────
# Decorators
# ─────────────────────────────────────────────────────────────────────────────
def application_path(value: str):
    """Set the root path of an application class."""
    marker = ApplicationPath(_require_str(value, "application_path"))
    return lambda target: _attach(target, marker)


def path(value: str):
    """Set the path of a resource class or the path suffix of an operation."""
    marker = Path(_require_str(value, "path"))
    return lambda target: _attach(target, marker)


def declare_roles(*roles):
    """Declare roles on an application class. May be applied more than once."""
    marker = DeclareRoles(_role_names(roles, "declare_roles"))
    return lambda target: _attach(target, marker)


def roles_allowed(*roles):
    """Restrict a resource class or operation to the given roles.

    Note: an empty role list is treated as open access by the extractor,
    exactly like permit_all.
    """
    marker = RolesAllowed(_role_names(roles, "roles_allowed"))
    return lambda target: _attach(target, marker)


def deny_all(target: T) -> T:
    """Deny every caller access to a resource class or operation."""
    return _attach(target, DenyAll())


def permit_all(target: T) -> T:
    """Grant every caller access to a resource class or operation."""
    return _attach(target, PermitAll())


def keycloak(json: str = "", auth_server_url: str = "", ssl_required: str = ""):
    """Embed Keycloak adapter configuration on an application class."""
    marker = Keycloak(
        json=_require_str(json, "keycloak(json)"),
        auth_server_url=_require_str(auth_server_url, "keycloak(auth_server_url)"),
        ssl_required=_require_str(ssl_required, "keycloak(ssl_required)"),
    )
    return lambda target: _attach(target, marker)


def http_method(verb: str) -> HttpMethod:
    """Create an HTTP verb marker (e.g. for WebDAV or custom verbs)."""
    verb = _require_str(verb, "http_method").strip().upper()
    if not verb:
        raise MarkerError("http_method expects a non-empty verb")
    return HttpMethod(verb)


get = http_method("GET")
post = http_method("POST")
put = http_method("PUT")
delete = http_method("DELETE")
patch = http_method("PATCH")
head = http_method("HEAD")
options = http_method("OPTIONS")
