import random

import pytest

from bizops_console.auth import FEATURES, SessionUser, full_access_role, read_role
from bizops_console.config import AppConfig
from bizops_console.db import DatabaseConfig, init_database


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "test_db.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


@pytest.fixture
def db_cfg(tmp_path) -> DatabaseConfig:
    cfg = make_tmp_db_cfg(tmp_path)
    init_database(cfg)
    return cfg


@pytest.fixture
def app_config(db_cfg) -> AppConfig:
    return AppConfig(database=db_cfg)


@pytest.fixture
def admin() -> SessionUser:
    """A user with full access to every feature."""
    return SessionUser(
        uid="admin@example.com",
        email="admin@example.com",
        roles=tuple(full_access_role(feature) for feature in FEATURES),
    )


@pytest.fixture
def reader() -> SessionUser:
    """A user with read-only access to the features that have a read role."""
    return SessionUser(
        uid="reader@example.com",
        email="reader@example.com",
        roles=tuple(read_role(feature) for feature in FEATURES),
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)
