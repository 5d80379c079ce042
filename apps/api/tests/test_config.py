"""Tests for loading settings from dotenv files."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

from portal.config import PROJECT_ROOT, load_environment

SETTINGS = ("JWT_SECRET_KEY", "DATABASE_URL")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run from an empty directory with none of the portal settings set."""
    for name in SETTINGS:
        monkeypatch.delenv(name, raising=False)
    # Registered first so whatever load_environment sets is undone
    monkeypatch.setenv("LEO_TEST_ONLY", "")
    monkeypatch.delenv("LEO_TEST_ONLY")
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestLoadEnvironment:
    """Tests for load_environment."""

    def test_reads_dotenv_from_working_directory(self, clean_env):
        (clean_env / ".env").write_text("LEO_TEST_ONLY=from-dotenv\n")
        load_environment(project_root=str(clean_env / "elsewhere"))
        assert os.environ["LEO_TEST_ONLY"] == "from-dotenv"

    def test_env_local_wins_over_env(self, clean_env):
        (clean_env / ".env.local").write_text("LEO_TEST_ONLY=local\n")
        (clean_env / ".env").write_text("LEO_TEST_ONLY=shared\n")
        load_environment(project_root=str(clean_env))
        assert os.environ["LEO_TEST_ONLY"] == "local"

    def test_process_environment_wins(self, clean_env, monkeypatch):
        monkeypatch.setenv("LEO_TEST_ONLY", "exported")
        (clean_env / ".env").write_text("LEO_TEST_ONLY=from-dotenv\n")
        load_environment(project_root=str(clean_env))
        assert os.environ["LEO_TEST_ONLY"] == "exported"


@pytest.mark.skipif(
    (Path(PROJECT_ROOT) / ".env.local").exists(),
    reason="a local .env.local would take precedence",
)
def test_settings_read_at_import_come_from_dotenv(tmp_path):
    """The JWT secret and the engine must see values from .env."""
    db_path = tmp_path / "from-dotenv.db"
    (tmp_path / ".env").write_text(
        f"JWT_SECRET_KEY=secret-from-dotenv\nDATABASE_URL=sqlite:///{db_path}\n"
    )
    env = {key: value for key, value in os.environ.items() if key not in SETTINGS}
    env["PYTHONPATH"] = os.pathsep.join(sys.path)
    script = (
        "from portal.auth import jwt\n"
        "from portal.db import database\n"
        "print(jwt.SECRET_KEY)\n"
        "print(database.engine.url)\n"
    )

    result = subprocess.run(
        [sys.executable, "-c", script],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
        check=True,
    )

    secret, url = result.stdout.splitlines()
    assert secret == "secret-from-dotenv"
    assert url == f"sqlite+aiosqlite:///{db_path}"
