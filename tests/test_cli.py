from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from parley.main import cli


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    profiles = tmp_path / "profiles.yaml"
    profiles.write_text(
        """
profiles:
  scripted:
    instructions: Be mysterious.
    introduction: Welcome, recruit.
  default:
    instructions: Be friendly.
""",
        encoding="utf-8",
    )
    path = tmp_path / "parley.yaml"
    path.write_text(
        f"""
parley:
  models:
    reply: test
  retry:
    base_delay_seconds: 0
  store:
    db_path: {tmp_path / "data" / "parley.db"}
    profiles_path: {profiles}
  cache:
    dir: {tmp_path / "cache"}
""",
        encoding="utf-8",
    )
    return path


def test_init_creates_database_and_seeds_profiles(config_file: Path, tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["init", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "2 profiles seeded" in result.output
    assert (tmp_path / "data" / "parley.db").exists()


def test_init_with_missing_config_fails(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["init", "--config", str(tmp_path / "nope.yaml")])
    assert result.exit_code != 0


def test_chat_opens_default_contact_and_quits(config_file: Path) -> None:
    runner = CliRunner()
    assert runner.invoke(cli, ["init", "--config", str(config_file)]).exit_code == 0

    result = runner.invoke(
        cli,
        ["chat", "--config", str(config_file), "--actor", "u1"],
        input="/more\n/quit\n",
    )

    assert result.exit_code == 0, result.output
    assert "Chatting with the_syndicate" in result.output
    assert "them: Welcome, recruit." in result.output
    assert "(no older turns)" in result.output


def test_chat_requires_actor(config_file: Path) -> None:
    result = CliRunner().invoke(cli, ["chat", "--config", str(config_file)])
    assert result.exit_code != 0
    assert "--actor" in result.output
