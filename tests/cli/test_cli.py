"""End-to-end tests for the dblineage CLI."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from dblineage.cli.main import cli
from dblineage.config import loader

SCHEMA_SQL = "CREATE TABLE orders (id INT PRIMARY KEY, status VARCHAR(20));\n"

JOBS_PY = """\
def ship(conn, order_id):
    conn.execute("UPDATE orders SET status = 'shipped' WHERE id = ?", (order_id,))
"""


@pytest.fixture(autouse=True)
def isolated_cli(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """No global config; logging restored after each invocation."""
    monkeypatch.setattr(loader, "GLOBAL_CONFIG_PATH", temp_dir / "no-global.yaml")
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def repo(temp_dir: Path) -> Path:
    root = temp_dir / "repo"
    (root / "db").mkdir(parents=True)
    (root / "jobs").mkdir()
    (root / "db" / "schema.sql").write_text(SCHEMA_SQL)
    (root / "jobs" / "ship.py").write_text(JOBS_PY)
    return root


def _scan(runner: CliRunner, repo: Path, db: Path) -> None:
    result = runner.invoke(cli, ["scan", str(repo), "--project", "p1", "--db", str(db)])
    assert result.exit_code == 0, result.output


def _lineage_args(repo: Path, db: Path, *extra: str) -> list[str]:
    return ["lineage", "orders", "--project", "p1", "--root", str(repo), "--db", str(db), *extra]


class TestCli:
    def test_given_version_flag_when_invoked_then_version_printed(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "dblineage" in result.output

    def test_given_scanned_repo_when_lineage_json_then_file_nodes(
        self, repo: Path, temp_dir: Path
    ) -> None:
        # Given
        runner = CliRunner()
        db = temp_dir / "lineage.db"
        _scan(runner, repo, db)

        # When
        result = runner.invoke(cli, _lineage_args(repo, db, "--json"))

        # Then
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["from_cache"] is False
        assert data["tree"]["name"] == "orders"
        assert "jobs/ship.py" in [c["name"] for c in data["tree"]["children"]]

    def test_given_stored_lineage_when_requested_again_then_served_from_store(
        self, repo: Path, temp_dir: Path
    ) -> None:
        runner = CliRunner()
        db = temp_dir / "lineage.db"
        _scan(runner, repo, db)
        runner.invoke(cli, _lineage_args(repo, db, "--json"))

        result = runner.invoke(cli, _lineage_args(repo, db, "--json"))

        assert json.loads(result.stdout)["from_cache"] is True

    def test_given_unknown_table_when_lineage_then_error_exit(
        self, repo: Path, temp_dir: Path
    ) -> None:
        runner = CliRunner()
        db = temp_dir / "lineage.db"
        _scan(runner, repo, db)

        result = runner.invoke(
            cli, ["lineage", "nope", "--project", "p1", "--root", str(repo), "--db", str(db)]
        )

        assert result.exit_code == 1
        assert "Table not found: nope" in result.output

    def test_given_invalidate_when_invoked_then_stored_results_removed(
        self, repo: Path, temp_dir: Path
    ) -> None:
        # Given
        runner = CliRunner()
        db = temp_dir / "lineage.db"
        _scan(runner, repo, db)
        runner.invoke(cli, _lineage_args(repo, db, "--json"))

        # When
        result = runner.invoke(
            cli, ["invalidate", "--project", "p1", "--root", str(repo), "--db", str(db)]
        )

        # Then
        assert result.exit_code == 0, result.output
        assert "1 stored results removed" in result.output
        again = runner.invoke(cli, _lineage_args(repo, db, "--json"))
        assert json.loads(again.stdout)["from_cache"] is False

    def test_given_scanned_repo_when_tree_rendered_then_nodes_printed(
        self, repo: Path, temp_dir: Path
    ) -> None:
        runner = CliRunner()
        db = temp_dir / "lineage.db"
        _scan(runner, repo, db)

        result = runner.invoke(cli, _lineage_args(repo, db))

        assert result.exit_code == 0, result.output
        assert "orders" in result.output
        assert "jobs/ship.py" in result.output
        assert "generated" in result.output

    def test_given_scanned_repo_when_tables_listed_then_columns_shown(
        self, repo: Path, temp_dir: Path
    ) -> None:
        runner = CliRunner()
        db = temp_dir / "lineage.db"
        _scan(runner, repo, db)

        result = runner.invoke(
            cli, ["tables", "--project", "p1", "--root", str(repo), "--db", str(db), "--json"]
        )

        assert result.exit_code == 0, result.output
        [entry] = json.loads(result.stdout)
        assert entry["table_name"] == "orders"
        assert [c["name"] for c in entry["columns"]] == ["id", "status"]

    def test_given_file_component_when_source_requested_then_printed(
        self, repo: Path, temp_dir: Path
    ) -> None:
        # Given
        runner = CliRunner()
        db = temp_dir / "lineage.db"
        _scan(runner, repo, db)
        tree = json.loads(runner.invoke(cli, _lineage_args(repo, db, "--json")).stdout)["tree"]
        component_id = next(
            c["component_id"] for c in tree["children"] if c["name"] == "jobs/ship.py"
        )

        # When
        result = runner.invoke(
            cli, ["source", component_id, "--root", str(repo), "--db", str(db)]
        )

        # Then
        assert result.exit_code == 0, result.output
        assert "UPDATE orders SET status" in result.output

    def test_given_unknown_component_when_source_requested_then_error_exit(
        self, repo: Path, temp_dir: Path
    ) -> None:
        result = CliRunner().invoke(
            cli, ["source", "missing", "--root", str(repo), "--db", str(temp_dir / "x.db")]
        )

        assert result.exit_code == 1
        assert "No stored source" in result.output
