"""
Pytest configuration and shared fixtures for directory-api tests
"""
import pytest

from directory_api.env_settings import get_env
from directory_api.ldap.handle import DirectoryHandle
from directory_api.ldap.models import Credential
from directory_api.services.directory import DirectoryService

from .fakes import ADMIN_DN, ADMIN_PASSWORD, BASE_DN, FakeConnection


@pytest.fixture(autouse=True)
def env(monkeypatch, tmp_path):
    """Test environment; settings are cached, so the cache is reset around each test."""
    monkeypatch.setenv("APP_SECRET_KEY", "test-secret-key")
    monkeypatch.setenv("LDAP_URL", "ldap://ldap.invalid:389")
    monkeypatch.setenv("LDAP_BASE_DN", BASE_DN)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    get_env.cache_clear()
    yield get_env()
    get_env.cache_clear()


@pytest.fixture
def fake():
    return FakeConnection()


@pytest.fixture
def handle(fake):
    return DirectoryHandle(fake, BASE_DN)


@pytest.fixture
def service(handle):
    return DirectoryService(handle)


@pytest.fixture
def admin():
    return Credential(dn=ADMIN_DN, password=ADMIN_PASSWORD)
