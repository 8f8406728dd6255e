"""Pytest shared fixtures for the security extension tests."""
import os
import pathlib
import sys

# Add project root (and the sample application package) to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
TESTS_DIR = ROOT / "tests"
for entry in (ROOT, TESTS_DIR):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

import pytest
from flask import Flask

from keycloak_security.config import SecuritySettings


# ─────────────────────────────────────────────────────────────────────────────
# Environment Isolation
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _clean_security_env(monkeypatch, tmp_path):
    """Keep host environment and Docker secrets out of unit tests."""
    for name in list(os.environ):
        if name.startswith("SECURITY_") or name.endswith("_SECURITY_KEYCLOAK_JSON"):
            monkeypatch.delenv(name, raising=False)
    from keycloak_security.config import settings as settings_module
    monkeypatch.setattr(settings_module, "SECRETS_DIR", tmp_path / "secrets")


# ─────────────────────────────────────────────────────────────────────────────
# Settings & Flask App
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def security_settings():
    return SecuritySettings(config_namespace="app")


@pytest.fixture()
def flask_app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def resource_index(tmp_path):
    """Resource index listing the sample resources plus noise."""
    index = tmp_path / "resources.idx"
    index.write_text(
        "\n".join([
            "# generated resource index",
            "sample_app.resources.orders.OrderResource",
            "",
            "sample_app.resources.catalog:CatalogResource",
            "sample_app.resources.missing.GhostResource",
            "sample_app.resources.catalog.NoSuchResource",
            "elsewhere.api.ForeignResource",
            "sample_app.resources.catalog.StatusResource",
        ]) + "\n",
        encoding="utf-8",
    )
    return index
