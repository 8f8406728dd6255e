"""Tests for the resource-to-constraint mapping."""
import functools

import pytest

from keycloak_security.core import annotations as sec
from keycloak_security.core import constraints
from keycloak_security.core.models import SecurityConstraint, SecurityPolicy

from sample_app.application import BareApplication, RestApplication
from sample_app.resources.catalog import CatalogResource, StatusResource
from sample_app.resources.orders import OrderResource


def _resource(path=None, *markers):
    """Build an empty resource class with optional path and security markers."""
    cls = type("Resource", (), {})
    for marker in reversed(markers):
        cls = marker(cls)
    if path is not None:
        cls = sec.path(path)(cls)
    return cls


# ─────────────────────────────────────────────────────────────────────────────
# Paths
# ─────────────────────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "declared, expected",
    [
        (None, ""),
        ("", ""),
        ("api", "/api"),
        ("/api", "/api"),
    ],
)
def test_compute_base_path(declared, expected):
    app = type("App", (), {})
    if declared is not None:
        app = sec.application_path(declared)(app)
    assert constraints.compute_base_path(app) == expected


@pytest.mark.parametrize(
    "resource_path, expected",
    [
        ("orders", "/api/orders"),
        ("/orders", "/api/orders"),
        ("", "/api"),
        (None, "/api"),
        ("/", "/api/"),
    ],
)
def test_resolve_resource_path(resource_path, expected):
    assert constraints.resolve_resource_path("/api", _resource(resource_path)) == expected


def test_join_path_keeps_double_slashes():
    assert constraints.join_path("/api/", "/orders") == "/api//orders"


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/users/{id}/orders", "/users/*"),
        ("/users/{id}", "/users/*"),
        ("/users", "/users"),
        ("/a/b{c}/d", "/a/b*"),
    ],
)
def test_replace_parameters(path, expected):
    assert constraints.replace_parameters(path) == expected


# ─────────────────────────────────────────────────────────────────────────────
# Policies
# ─────────────────────────────────────────────────────────────────────────────
def test_resource_without_markers_has_no_policy():
    assert constraints.derive_resource_security(_resource("x")) is None


def test_resource_policy_precedence():
    both = _resource("x", sec.permit_all, sec.roles_allowed("admin"), sec.deny_all)
    assert constraints.derive_resource_security(both) == SecurityPolicy("deny_all")

    allowed = _resource("x", sec.permit_all, sec.roles_allowed("admin"))
    assert constraints.derive_resource_security(allowed) == SecurityPolicy("roles_allowed", ("admin",))

    permitted = _resource("x", sec.permit_all)
    assert constraints.derive_resource_security(permitted) == SecurityPolicy("permit_all")


@pytest.mark.parametrize(
    "policy, expected_roles",
    [
        (SecurityPolicy("deny_all"), frozenset()),
        (SecurityPolicy("roles_allowed", ("admin", "user")), frozenset({"admin", "user"})),
        (SecurityPolicy("roles_allowed", ()), None),
        (SecurityPolicy("permit_all"), None),
    ],
)
def test_constraint_for_policy(policy, expected_roles):
    constraint = constraints.constraint_for_policy("GET", "/x", policy)
    assert constraint == SecurityConstraint("GET", "/x", expected_roles)


# ─────────────────────────────────────────────────────────────────────────────
# Operations
# ─────────────────────────────────────────────────────────────────────────────
def test_path_only_operation_defaults_to_get():
    @sec.path("details")
    @sec.permit_all
    def details():
        pass

    assert constraints.derive_operation_constraint("/r", details) == SecurityConstraint("GET", "/r/details", None)


def test_operation_without_verb_or_path_is_skipped():
    @sec.roles_allowed("admin")
    def helper():
        pass

    assert constraints.derive_operation_constraint("/r", helper, SecurityPolicy("permit_all")) is None


def test_operation_without_any_policy_is_skipped():
    @sec.get
    def listing():
        pass

    assert constraints.derive_operation_constraint("/r", listing, None) is None


def test_operation_inherits_resource_policy():
    @sec.put
    def update():
        pass

    constraint = constraints.derive_operation_constraint("/r", update, SecurityPolicy("roles_allowed", ("ops",)))
    assert constraint == SecurityConstraint("PUT", "/r", frozenset({"ops"}))


def test_operation_deny_all_overrides_resource_roles():
    @sec.get
    @sec.deny_all
    def secret():
        pass

    constraint = constraints.derive_operation_constraint("/r", secret, SecurityPolicy("roles_allowed", ("admin",)))
    assert constraint.is_denied
    assert constraint.roles == frozenset()


def test_operation_roles_replace_resource_roles():
    @sec.get
    @sec.roles_allowed("user")
    def mine():
        pass

    constraint = constraints.derive_operation_constraint("/r", mine, SecurityPolicy("roles_allowed", ("admin",)))
    assert constraint.roles == frozenset({"user"})


def test_operation_empty_roles_allowed_is_open():
    # Surprising but intended: an empty list does not mean "nobody".
    @sec.get
    @sec.roles_allowed()
    def anyone():
        pass

    constraint = constraints.derive_operation_constraint("/r", anyone, SecurityPolicy("deny_all"))
    assert constraint.is_open


def test_operation_without_path_keeps_resource_path_verbatim():
    @sec.get
    @sec.permit_all
    def listing():
        pass

    constraint = constraints.derive_operation_constraint("/users/{uid}", listing)
    assert constraint.url_pattern == "/users/{uid}"


@pytest.mark.parametrize("suffix, expected", [("", "/r"), ("/{id}", "/r/*"), ("{id}/orders", "/r/*")])
def test_operation_path_suffix(suffix, expected):
    @sec.post
    @sec.path(suffix)
    @sec.permit_all
    def create():
        pass

    assert constraints.derive_operation_constraint("/r", create).url_pattern == expected


def test_multiple_verb_markers_pick_a_deterministic_verb():
    @sec.get
    @sec.post
    @sec.permit_all
    def ambiguous():
        pass

    first = constraints.derive_operation_constraint("/r", ambiguous)
    second = constraints.derive_operation_constraint("/r", ambiguous)
    assert first.http_method in {"GET", "POST"}
    assert first == second


def test_custom_http_method():
    propfind = sec.http_method("PROPFIND")

    @propfind
    @sec.permit_all
    def properties():
        pass

    assert constraints.derive_operation_constraint("/dav", properties).http_method == "PROPFIND"


def test_describe_operation():
    descriptor = constraints.describe_operation("/api/orders", OrderResource.get_order)
    assert descriptor.name == "get_order"
    assert descriptor.http_method == "GET"
    assert descriptor.path == "/api/orders/*"
    assert descriptor.policy == SecurityPolicy("permit_all")


def test_iter_operations_skips_private_and_non_functions():
    class Base:
        @sec.get
        def inherited(self):
            pass

        @sec.get
        def overridden(self):
            pass

    class Child(Base):
        label = "child"

        def overridden(self):
            pass

        @property
        def computed(self):
            return 1

        @classmethod
        def build(cls):
            return cls()

        def _hidden(self):
            pass

    names = [name for name, _ in constraints.iter_operations(Child)]
    assert names == ["overridden", "build", "inherited"]


# ─────────────────────────────────────────────────────────────────────────────
# Application
# ─────────────────────────────────────────────────────────────────────────────
def test_get_constraints_for_sample_application():
    result = constraints.get_constraints(RestApplication, [OrderResource, CatalogResource, StatusResource])
    assert result == [
        SecurityConstraint("GET", "/api/orders", frozenset({"admin"})),
        SecurityConstraint("GET", "/api/orders/*", None),
        SecurityConstraint("DELETE", "/api/orders/*", frozenset()),
        SecurityConstraint("POST", "/api/orders", frozenset({"admin", "user"})),
        SecurityConstraint("GET", "/api/catalog/items/*", frozenset({"reviewer"})),
    ]


def test_unmarked_resources_produce_no_constraints():
    assert constraints.get_constraints(RestApplication, [StatusResource]) == []


def test_duplicate_constraints_are_kept():
    result = constraints.get_constraints(BareApplication, [OrderResource, OrderResource])
    assert len(result) == 8
    assert result[:4] == result[4:]


def test_end_to_end_orders_resource():
    @sec.application_path("/api")
    class App:
        pass

    @sec.path("orders")
    @sec.roles_allowed("admin")
    class Orders:
        @sec.get
        def list_orders(self):
            pass

        @sec.path("{id}")
        @sec.permit_all
        def get_order(self, order_id):
            pass

    assert constraints.get_constraints(App, [Orders]) == [
        SecurityConstraint("GET", "/api/orders", frozenset({"admin"})),
        SecurityConstraint("GET", "/api/orders/*", None),
    ]


def test_proxied_classes_are_unwrapped():
    @sec.application_path("/api")
    class App:
        pass

    @sec.path("things")
    @sec.permit_all
    class Things:
        @sec.get
        def listing(self):
            pass

    class ThingsProxy:
        __wrapped__ = Things

    class AppProxy:
        __wrapped__ = App

    assert constraints.get_constraints(AppProxy, [ThingsProxy]) == [
        SecurityConstraint("GET", "/api/things", None),
    ]


def test_wrapped_operation_keeps_markers():
    def logged(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            return fn(*args, **kwargs)
        return wrapper

    @sec.path("logs")
    @sec.roles_allowed("ops")
    class Logs:
        @logged
        @sec.get
        def tail(self):
            pass

    assert constraints.get_constraints(BareApplication, [Logs]) == [
        SecurityConstraint("GET", "/logs", frozenset({"ops"})),
    ]


def test_get_declared_roles_deduplicates_in_order():
    assert constraints.get_declared_roles(RestApplication) == ["admin", "user", "auditor"]
    assert constraints.get_declared_roles(BareApplication) == []


def test_undeclared_roles():
    result = [
        SecurityConstraint("GET", "/a", frozenset({"admin", "reviewer"})),
        SecurityConstraint("GET", "/b", None),
        SecurityConstraint("GET", "/c", frozenset()),
    ]
    assert constraints.undeclared_roles(["admin"], result) == ["reviewer"]
