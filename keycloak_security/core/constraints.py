"""Resource-to-constraint mapping.

Turns the markers declared on an application class and its resource
classes into the flat, ordered policy table consumed by the Keycloak
adapter.

Path rules (purely syntactic, no normalization):
    base "/api" + resource "orders"   -> "/api/orders"
    base "/api" + resource "/orders"  -> "/api/orders"
    base "/api" + no resource path    -> "/api"
    "/api/orders" + operation "{id}/items" -> "/api/orders/*"

Policy rules:
    - operation markers override resource markers entirely (no merging)
    - deny_all is checked before roles_allowed, before permit_all
    - no marker on either level means no constraint at all
    - roles_allowed with no roles is open access, same as permit_all
"""
from __future__ import annotations
import inspect
import logging
import re
from typing import Any, Iterable, Iterator, Optional

from .annotations import (
    ApplicationPath,
    DeclareRoles,
    DenyAll,
    HttpMethod,
    Path,
    PermitAll,
    RolesAllowed,
    find_marker,
    find_markers,
    get_markers,
)
from .models import OperationDescriptor, ResourceDescriptor, SecurityConstraint, SecurityPolicy

logger = logging.getLogger(__name__)

DEFAULT_HTTP_METHOD = "GET"

_PATH_PARAMETER = re.compile(r"\{.*")


def unwrap_proxy(target: Any) -> Any:
    """Get the underlying class behind decorator or proxy wrappers.

    Wrappers expose the wrapped class through ``__wrapped__`` (set by
    functools.wraps / functools.update_wrapper or explicitly by a proxy).
    """
    return inspect.unwrap(target)


# ─────────────────────────────────────────────────────────────────────────────
# Paths
# ─────────────────────────────────────────────────────────────────────────────
def join_path(prefix: str, suffix: str) -> str:
    """Append suffix to prefix, inserting "/" only when suffix lacks one."""
    if not suffix:
        return prefix
    if suffix.startswith("/"):
        return prefix + suffix
    return prefix + "/" + suffix


def replace_parameters(path: str) -> str:
    """Collapse the first path parameter and everything after it to "*"."""
    return _PATH_PARAMETER.sub("*", path)


def compute_base_path(application_type: type) -> str:
    """Get the application root path ("" when undeclared)."""
    marker = find_marker(unwrap_proxy(application_type), ApplicationPath)
    if marker is None:
        return ""
    base_path = marker.value
    if base_path and not base_path.startswith("/"):
        base_path = "/" + base_path
    return base_path


def resolve_resource_path(base_path: str, resource_type: type) -> str:
    """Get the full path of a resource class under base_path."""
    marker = find_marker(unwrap_proxy(resource_type), Path)
    if marker is None:
        return base_path
    return join_path(base_path, marker.value)


# ─────────────────────────────────────────────────────────────────────────────
# Policies
# ─────────────────────────────────────────────────────────────────────────────
def _resolve_policy(markers: Iterable[Any]) -> Optional[SecurityPolicy]:
    markers = list(markers)
    if any(isinstance(marker, DenyAll) for marker in markers):
        return SecurityPolicy("deny_all")
    allowed = [marker for marker in markers if isinstance(marker, RolesAllowed)]
    if allowed:
        return SecurityPolicy("roles_allowed", allowed[-1].roles)
    if any(isinstance(marker, PermitAll) for marker in markers):
        return SecurityPolicy("permit_all")
    return None


def derive_resource_security(resource_type: type) -> Optional[SecurityPolicy]:
    """Get the class-level policy of a resource, or None if unmarked."""
    return _resolve_policy(get_markers(unwrap_proxy(resource_type)))


def constraint_for_policy(http_method: str, url_pattern: str, policy: SecurityPolicy) -> SecurityConstraint:
    """Map a resolved policy onto a constraint."""
    if policy.kind == "deny_all":
        return SecurityConstraint.deny(http_method, url_pattern)
    if policy.kind == "roles_allowed" and policy.roles:
        return SecurityConstraint.restricted(http_method, url_pattern, policy.roles)
    return SecurityConstraint.open_access(http_method, url_pattern)


# ─────────────────────────────────────────────────────────────────────────────
# Operations
# ─────────────────────────────────────────────────────────────────────────────
def iter_operations(resource_type: type) -> Iterator[tuple[str, Any]]:
    """Yield (name, function) for public callables of a resource class.

    Declaration order, subclass members first; members overridden in a
    subclass are reported once, from the subclass.
    """
    seen: set[str] = set()
    for klass in resource_type.__mro__:
        if klass is object:
            continue
        for name, member in vars(klass).items():
            if name.startswith("_") or name in seen:
                continue
            seen.add(name)
            if isinstance(member, (staticmethod, classmethod)):
                member = member.__func__
            if inspect.isfunction(member):
                yield name, member


def describe_operation(resource_path: str, operation: Any, name: Optional[str] = None) -> OperationDescriptor:
    """Scan the markers of one operation.

    When several verb markers are present the last one in source order is
    used.
    """
    markers = get_markers(operation)
    http_method = None
    path_marker = None
    for marker in markers:
        if isinstance(marker, HttpMethod):
            http_method = marker.value
        elif isinstance(marker, Path):
            path_marker = marker

    operation_path = resource_path
    if path_marker is not None:
        operation_path = replace_parameters(join_path(resource_path, path_marker.value))
        if http_method is None:
            http_method = DEFAULT_HTTP_METHOD

    return OperationDescriptor(
        name=name or getattr(operation, "__name__", repr(operation)),
        http_method=http_method,
        path=operation_path,
        policy=_resolve_policy(markers),
    )


def derive_operation_constraint(
    resource_path: str,
    operation: Any,
    resource_policy: Optional[SecurityPolicy] = None,
) -> Optional[SecurityConstraint]:
    """Get the constraint for one operation.

    Returns None when the operation is not a web endpoint (no verb and no
    path marker) or when neither the operation nor its resource declares a
    policy.
    """
    descriptor = describe_operation(resource_path, operation)
    if descriptor.http_method is None:
        return None
    policy = descriptor.policy or resource_policy
    if policy is None:
        return None
    return constraint_for_policy(descriptor.http_method, descriptor.path, policy)


# ─────────────────────────────────────────────────────────────────────────────
# Application
# ─────────────────────────────────────────────────────────────────────────────
def describe_resource(base_path: str, resource_type: type) -> ResourceDescriptor:
    resource_type = unwrap_proxy(resource_type)
    return ResourceDescriptor(
        resource_type=resource_type,
        path=resolve_resource_path(base_path, resource_type),
        policy=derive_resource_security(resource_type),
    )


def get_declared_roles(application_type: type) -> list[str]:
    """Collect roles from every declare_roles marker, without duplicates."""
    roles: list[str] = []
    for marker in find_markers(unwrap_proxy(application_type), DeclareRoles):
        roles.extend(role for role in marker.roles if role not in roles)
    return roles


def get_constraints(application_type: type, resource_types: Iterable[type]) -> list[SecurityConstraint]:
    """Build the policy table of an application.

    Constraints follow resource order, then operation order within each
    resource. Duplicate method/pattern pairs are kept.
    """
    base_path = compute_base_path(application_type)
    constraints: list[SecurityConstraint] = []

    for resource_type in resource_types:
        resource = describe_resource(base_path, resource_type)
        for name, operation in iter_operations(resource.resource_type):
            constraint = derive_operation_constraint(resource.path, operation, resource.policy)
            if constraint is None:
                continue
            logger.debug(
                "Constraint %s %s roles=%s (%s.%s)",
                constraint.http_method,
                constraint.url_pattern,
                "open" if constraint.is_open else sorted(constraint.roles),
                resource.resource_type.__name__,
                name,
            )
            constraints.append(constraint)

    return constraints


def undeclared_roles(declared_roles: Iterable[str], constraints: Iterable[SecurityConstraint]) -> list[str]:
    """Get roles used by constraints that the application never declared."""
    declared = set(declared_roles)
    used = {role for constraint in constraints for role in (constraint.roles or ())}
    return sorted(used - declared)
