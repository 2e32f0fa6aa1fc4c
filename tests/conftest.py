"""Shared pytest fixtures for the theme composition engine tests."""

import os
import shutil

# Must be set before core.database is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest

from core import config
from core.database import Base, SessionLocal, engine, init_db
from models.store import Store
from utils.theme_package import ThemePackageReader

REPO_THEMES = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "themes")
OWNER_UID = "owner-1"


@pytest.fixture
def db():
    """Fresh schema and session per test."""
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def themes_dir(tmp_path, monkeypatch):
    """Writable copy of the bundled theme packages."""
    target = tmp_path / "themes"
    shutil.copytree(REPO_THEMES, target)
    monkeypatch.setattr(config, "THEMES_DIR", str(target))
    return target


@pytest.fixture
def reader(themes_dir):
    return ThemePackageReader(str(themes_dir))


@pytest.fixture
def local_storage(tmp_path, monkeypatch):
    """Theme files go to a temp directory instead of R2."""
    static = tmp_path / "static"
    monkeypatch.setattr(config, "STATIC_DIR", str(static))
    monkeypatch.setattr(config, "s3", None)
    return static


@pytest.fixture
def store(db, themes_dir):
    """A store on the base theme with no templates yet."""
    row = Store(owner_uid=OWNER_UID, name="Test Store", subdomain="test-store", active_theme_code="base")
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def client(db, store, local_storage, monkeypatch):
    """TestClient whose caller is whoever the x-test-uid header names."""
    from fastapi.testclient import TestClient

    import core.auth
    from routers import themes, theme_backups
    from main import app

    def fake_uid(request):
        return request.headers.get("x-test-uid")

    monkeypatch.setattr(themes, "get_uid_from_request", fake_uid)
    monkeypatch.setattr(theme_backups, "get_uid_from_request", fake_uid)
    monkeypatch.setattr(core.auth, "get_user_email_from_uid", lambda uid: None)
    monkeypatch.setattr(themes, "get_user_email_from_uid", lambda uid: "admin@example.com" if uid == "admin" else None)
    monkeypatch.setattr(themes, "ADMIN_EMAILS", ["admin@example.com"])
    return TestClient(app)


@pytest.fixture
def owner_headers():
    return {"x-test-uid": OWNER_UID}
