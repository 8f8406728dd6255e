"""Data model of the declarative policy table."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Optional

PolicyKind = Literal["deny_all", "roles_allowed", "permit_all"]


@dataclass(frozen=True)
class SecurityConstraint:
    """Binds an HTTP method and URL pattern to a role restriction.

    Attributes:
        http_method: Upper-case HTTP verb
        url_pattern: Absolute path; a trailing "*" replaces everything from
            the first path parameter on
        roles: None for open access, an empty set to deny everyone,
            otherwise the roles allowed
    """
    http_method: str
    url_pattern: str
    roles: Optional[frozenset[str]] = None

    @classmethod
    def open_access(cls, http_method: str, url_pattern: str) -> "SecurityConstraint":
        return cls(http_method, url_pattern, None)

    @classmethod
    def deny(cls, http_method: str, url_pattern: str) -> "SecurityConstraint":
        return cls(http_method, url_pattern, frozenset())

    @classmethod
    def restricted(cls, http_method: str, url_pattern: str, roles: Iterable[str]) -> "SecurityConstraint":
        return cls(http_method, url_pattern, frozenset(roles))

    @property
    def is_open(self) -> bool:
        return self.roles is None

    @property
    def is_denied(self) -> bool:
        return self.roles is not None and not self.roles

    def to_dict(self) -> dict[str, Any]:
        """Serializable form; roles are sorted for stable output."""
        return {
            "method": self.http_method,
            "pattern": self.url_pattern,
            "roles": None if self.roles is None else sorted(self.roles),
        }


@dataclass(frozen=True)
class SecurityPolicy:
    """Security marker resolved on a resource class or operation."""
    kind: PolicyKind
    roles: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResourceDescriptor:
    """Resource class with its resolved path and class-level policy."""
    resource_type: type
    path: str
    policy: Optional[SecurityPolicy]


@dataclass(frozen=True)
class OperationDescriptor:
    """Operation of a resource as seen by the extractor.

    http_method is None when the member is not a web endpoint.
    """
    name: str
    http_method: Optional[str]
    path: str
    policy: Optional[SecurityPolicy]


@dataclass
class SecurityConfiguration:
    """Everything handed to the security configurator for one application."""
    application: type
    json_config: str
    declared_roles: list[str] = field(default_factory=list)
    constraints: list[SecurityConstraint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "application": f"{self.application.__module__}:{self.application.__qualname__}",
            "declared_roles": list(self.declared_roles),
            "constraints": [constraint.to_dict() for constraint in self.constraints],
        }
