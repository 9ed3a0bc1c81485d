"""Tests for the command-line entry point (web3_scaffold.cli).

Covers:
- Exit codes for success, prerequisite failures, conflicts and mid-run failures
- Config layering (env < config file < flags)
- Dry runs
- JSON-lines log output
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from web3_scaffold import writer
from web3_scaffold.cli import EXIT_FAILURE, EXIT_OK, build_config, build_parser, main
from web3_scaffold.prerequisites import PrerequisiteError, ToolStatus


pytestmark = pytest.mark.unit


def _records(log_file: Path) -> list[dict]:
    return [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]


def _messages(log_file: Path, level: str) -> list[str]:
    return [r["message"] for r in _records(log_file) if r["level"] == level]


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "scaffold.jsonl"


# ---------------------------------------------------------------------------
# Config layering
# ---------------------------------------------------------------------------


class TestBuildConfig:
    def _config(self, *argv: str):
        return build_config(build_parser().parse_args(list(argv)))

    def test_flags(self, target_dir):
        config = self._config(str(target_dir), "--name", "Space Cats", "--symbol", "cat", "--minimal")
        assert config.project_name == "space-cats"
        assert config.collection_symbol == "CAT"
        assert config.minimal is True

    def test_unset_flags_keep_defaults(self, target_dir):
        config = self._config(str(target_dir))
        assert config.force is False
        assert config.max_supply == 10000

    def test_verbosity(self, target_dir):
        assert self._config(str(target_dir), "-v").log_level == "debug"
        assert self._config(str(target_dir), "-q").log_level == "warning"

    def test_verbose_and_quiet_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-v", "-q"])

    def test_env_then_file_then_flags(self, monkeypatch, tmp_path, target_dir):
        monkeypatch.setenv("W3S_MAX_SUPPLY", "100")
        monkeypatch.setenv("W3S_DESCRIPTION", "from env")
        monkeypatch.setenv("W3S_MINT_PRICE", "0.5")
        config_file = tmp_path / "scaffold.json"
        config_file.write_text(json.dumps({"max_supply": 200, "description": "from file"}), encoding="utf-8")

        config = self._config(str(target_dir), "--config", str(config_file), "--max-supply", "300")

        assert config.max_supply == 300
        assert config.description == "from file"
        assert config.mint_price_eth == "0.5"


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class TestMain:
    def test_success(self, target_dir, log_file):
        code = main([str(target_dir), "--skip-prerequisites", "-q", "--log-file", str(log_file)])
        assert code == EXIT_OK
        assert (target_dir / "contracts" / "contracts" / "BushidoNFT.sol").is_file()
        assert (target_dir / "backend" / "src" / "index.ts").is_file()

    def test_success_logs_summary(self, target_dir, log_file):
        main([str(target_dir), "--skip-prerequisites", "--log-file", str(log_file)])
        successes = _messages(log_file, "success")
        assert any(m.startswith("Generated ") for m in successes)

    def test_prerequisites_checked(self, target_dir, log_file):
        statuses = [
            ToolStatus("node", "18.0.0", found=True, version="20.11.1"),
            ToolStatus("pnpm", "8.0.0", found=True, version="8.15.4"),
        ]
        with patch("web3_scaffold.cli.check_prerequisites", new=AsyncMock(return_value=statuses)) as check:
            code = main([str(target_dir), "--log-file", str(log_file)])
        assert code == EXIT_OK
        check.assert_awaited_once()
        assert "node 20.11.1" in _messages(log_file, "success")

    def test_prerequisite_failure(self, target_dir, log_file):
        failure = PrerequisiteError([ToolStatus("pnpm", "8.0.0")])
        with patch("web3_scaffold.cli.check_prerequisites", new=AsyncMock(side_effect=failure)):
            code = main([str(target_dir), "--log-file", str(log_file)])

        assert code == EXIT_FAILURE
        assert not target_dir.exists()
        errors = _messages(log_file, "error")
        assert any("pnpm not found" in m for m in errors)
        assert any("nothing was written" in m for m in errors)

    def test_mid_generation_failure(self, target_dir, log_file):
        real_write_file = writer.write_file

        def _write(path, content):
            if Path(path).relative_to(target_dir).parts[0] == "scripts":
                raise PermissionError(13, "Permission denied", str(path))
            return real_write_file(path, content)

        with patch("web3_scaffold.writer.write_file", new=_write):
            code = main([str(target_dir), "--skip-prerequisites", "--log-file", str(log_file)])

        assert code == EXIT_FAILURE
        assert not target_dir.exists()
        records = [r for r in _records(log_file) if r["level"] == "error"]
        final = records[-1]
        assert final["step"] == "scripts"
        assert "Scaffolding failed at step 'scripts'" in final["message"]
        assert str(log_file) in final["message"]

    def test_conflict(self, target_dir, log_file):
        target_dir.mkdir()
        (target_dir / "turbo.json").write_text("{}", encoding="utf-8")

        code = main([str(target_dir), "--skip-prerequisites", "--log-file", str(log_file)])

        assert code == EXIT_FAILURE
        assert (target_dir / "turbo.json").read_text(encoding="utf-8") == "{}"
        assert any("--force" in m for m in _messages(log_file, "error"))

    def test_force(self, target_dir):
        target_dir.mkdir()
        (target_dir / "turbo.json").write_text("{}", encoding="utf-8")
        code = main([str(target_dir), "--skip-prerequisites", "--force", "-q"])
        assert code == EXIT_OK
        assert "pipeline" in (target_dir / "turbo.json").read_text(encoding="utf-8")

    def test_invalid_configuration(self, target_dir, capsys):
        code = main([str(target_dir), "--mint-price", "free"])
        assert code == EXIT_FAILURE
        assert "Invalid configuration" in capsys.readouterr().out
        assert not target_dir.exists()

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "+0.5", "1e-3", "0.1234567890123456789"])
    def test_unusable_mint_price(self, target_dir, price, capsys):
        code = main([str(target_dir), "--skip-prerequisites", "--mint-price", price, "-q"])
        assert code == EXIT_FAILURE
        assert "Invalid configuration" in capsys.readouterr().out
        assert not target_dir.exists()

    def test_unusable_symbol(self, target_dir):
        code = main([str(target_dir), "--skip-prerequisites", "--symbol", 'BS"H', "-q"])
        assert code == EXIT_FAILURE
        assert not target_dir.exists()

    def test_multiline_description_stays_in_comment(self, target_dir):
        code = main([
            str(target_dir),
            "--skip-prerequisites",
            "-q",
            "--description",
            "Line one\ncontract Evil {}",
        ])
        assert code == EXIT_OK
        source = (target_dir / "contracts" / "contracts" / "BushidoNFT.sol").read_text(encoding="utf-8")
        lines = source.splitlines()
        assert "contract Evil {}" not in [line.strip() for line in lines]
        assert "/// @notice Line one contract Evil {}" in lines

    def test_missing_config_file(self, target_dir, tmp_path):
        code = main([str(target_dir), "--config", str(tmp_path / "absent.json")])
        assert code == EXIT_FAILURE

    def test_interrupt(self, target_dir, log_file):
        with patch("web3_scaffold.cli.run", new=AsyncMock(side_effect=KeyboardInterrupt)):
            code = main([str(target_dir), "--log-file", str(log_file)])
        assert code == EXIT_FAILURE
        assert any("Interrupted" in m for m in _messages(log_file, "error"))


# ---------------------------------------------------------------------------
# Dry run and minimal mode
# ---------------------------------------------------------------------------


class TestModes:
    def test_dry_run_writes_nothing(self, target_dir, log_file, capsys):
        code = main([str(target_dir), "--skip-prerequisites", "--dry-run", "--log-file", str(log_file)])
        assert code == EXIT_OK
        assert not target_dir.exists()
        assert "BushidoNFT.sol" in capsys.readouterr().out
        assert "Dry run: nothing was written" in _messages(log_file, "info")

    def test_dry_run_reports_conflicts(self, target_dir, log_file):
        target_dir.mkdir()
        (target_dir / "package.json").write_text("{}", encoding="utf-8")
        code = main([str(target_dir), "--skip-prerequisites", "--dry-run", "--log-file", str(log_file)])
        assert code == EXIT_OK
        assert any("already exist" in m for m in _messages(log_file, "warning"))

    def test_minimal(self, target_dir):
        code = main([str(target_dir), "--skip-prerequisites", "--minimal", "-q"])
        assert code == EXIT_OK
        assert sorted(p.name for p in target_dir.iterdir() if p.is_dir()) == ["contracts", "frontend"]

    def test_minimal_from_env(self, monkeypatch, target_dir):
        monkeypatch.setenv("W3S_MINIMAL", "1")
        code = main([str(target_dir), "--skip-prerequisites", "-q"])
        assert code == EXIT_OK
        assert not (target_dir / "backend").exists()
