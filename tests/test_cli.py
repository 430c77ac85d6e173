from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path

import yaml
from typer.testing import CliRunner

from conftest import GuideFixture
from migrator.cli import app
from migrator.config import default_config

runner = CliRunner()


def test_search_lists_matching_guides(guides_dir: GuideFixture) -> None:
    result = runner.invoke(
        app,
        ["search", "testing", "--guides", str(guides_dir.root), "-n", "1"],
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert "Found 1 relevant guide(s):" in result.output
    assert "## testing-guide" in result.output


def test_issue_reports_guidance(guides_dir: GuideFixture) -> None:
    result = runner.invoke(
        app,
        ["issue", "provider state", "--guides", str(guides_dir.root)],
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert "MIGRATION GUIDANCE FOR: PROVIDER STATE" in result.output
    assert "## state-and-providers-guide" in result.output


def test_context_prints_full_or_issue_scoped_guides(guides_dir: GuideFixture) -> None:
    full = runner.invoke(app, ["context", "--guides", str(guides_dir.root)], catch_exceptions=False)
    scoped = runner.invoke(
        app,
        ["context", "--guides", str(guides_dir.root), "--issue", "composeState caching"],
        catch_exceptions=False,
    )

    assert full.exit_code == 0, full.output
    for name in guides_dir.names:
        assert f"GUIDE: {name}" in full.output
    assert scoped.exit_code == 0, scoped.output
    assert "GUIDE: state-and-providers-guide" in scoped.output
    assert "GUIDE: testing-guide" not in scoped.output


def test_init_config_writes_defaults_once(tmp_path: Path) -> None:
    target = tmp_path / "conf" / "migrator.yaml"

    first = runner.invoke(app, ["init-config", str(target)], catch_exceptions=False)
    second = runner.invoke(app, ["init-config", str(target)], catch_exceptions=False)
    forced = runner.invoke(app, ["init-config", str(target), "--force"], catch_exceptions=False)

    assert first.exit_code == 0, first.output
    assert yaml.safe_load(target.read_text(encoding="utf-8")) == default_config()
    assert second.exit_code == 1
    assert "already exists" in second.output
    assert forced.exit_code == 0


def test_migrate_without_guides_exits_nonzero(tmp_path: Path) -> None:
    result = runner.invoke(app, ["migrate", str(tmp_path), "--guides", str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "Cannot initialize migration system without guide access" in result.output


def test_migrate_with_bad_config_exits_nonzero(tmp_path: Path) -> None:
    result = runner.invoke(app, ["migrate", str(tmp_path), "--config", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_migrate_runs_configured_session_command(tmp_path: Path, guides_dir: GuideFixture) -> None:
    script = tmp_path / "session.py"
    script.write_text(
        textwrap.dedent(
            f"""
            import sys

            sys.stdin.read()
            print({json.dumps(json.dumps({"type": "result", "subtype": "success", "num_turns": 1}))}, flush=True)
            """
        ).lstrip(),
        encoding="utf-8",
    )
    config_path = tmp_path / "migrator.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "guides": {"path": "migration-guides"},
                "session": {"command": [sys.executable, str(script)], "model": None, "permission_mode": None},
            }
        ),
        encoding="utf-8",
    )
    repo = tmp_path / "plugin"
    repo.mkdir()

    result = runner.invoke(app, ["migrate", str(repo), "--config", str(config_path)], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Migration completed successfully!" in result.output
    assert "- State: completed" in result.output
    assert "- Guides used: migration-guide, advanced-migration-guide" in result.output


def test_null_guides_section_is_a_config_error(tmp_path: Path) -> None:
    config_path = tmp_path / "migrator.yaml"
    config_path.write_text("guides: null\n", encoding="utf-8")

    result = runner.invoke(
        app,
        ["search", "state", "--config", str(config_path), "--guides", str(tmp_path)],
    )

    assert result.exit_code == 1
    assert "'guides' must be a mapping" in result.output
