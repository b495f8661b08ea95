"""Tests for system_control overrides of lineage settings."""

from dblineage.config.models import LineageConfig
from dblineage.db import Database, SystemControl
from dblineage.lineage.settings import LineageSettings, load_settings


def _controls(db: Database, *rows: SystemControl) -> None:
    with db.session() as session:
        for row in rows:
            session.add(row)
        session.commit()


class TestLoadSettings:
    def test_given_no_rows_when_loaded_then_config_defaults(self, temp_db: Database) -> None:
        config = LineageConfig(max_hierarchy_depth=4, etl_enabled=True)

        with temp_db.session() as session:
            settings = load_settings(session, config)

        assert settings.max_hierarchy_depth == 4
        assert settings.etl_enabled is True
        assert settings.color_for("TABLE") == "#82c158"

    def test_given_active_rows_when_loaded_then_override_config(self, temp_db: Database) -> None:
        # Given
        _controls(
            temp_db,
            SystemControl(config_key="ETL_DB_LINEAGE_FLAG", config_value=" TRUE "),
            SystemControl(config_key="COLUMN_COLORS", config_value='{"TABLE": "#000000"}'),
            SystemControl(config_key="LINEAGE_CACHE_TTL", config_value="120"),
            SystemControl(config_key="MAX_HIERARCHY_DEPTH", config_value="3"),
        )

        # When
        with temp_db.session() as session:
            settings = load_settings(session, LineageConfig())

        # Then
        assert settings.etl_enabled is True
        assert settings.color_for("TABLE") == "#000000"
        assert settings.color_for("QUERY") == "#0a9ccd"
        assert settings.cache_ttl_sec == 120
        assert settings.max_hierarchy_depth == 3

    def test_given_invalid_or_inactive_rows_when_loaded_then_ignored(
        self, temp_db: Database
    ) -> None:
        # Given
        _controls(
            temp_db,
            SystemControl(config_key="ETL_DB_LINEAGE_FLAG", config_value="true", is_active=False),
            SystemControl(config_key="COLUMN_COLORS", config_value="not json"),
            SystemControl(config_key="LINEAGE_CACHE_TTL", config_value="0"),
            SystemControl(config_key="MAX_HIERARCHY_DEPTH", config_value="deep"),
        )

        # When
        with temp_db.session() as session:
            settings = load_settings(session, LineageConfig())

        # Then
        assert settings == LineageSettings.from_config(LineageConfig())

    def test_given_settings_when_round_tripped_then_equal(self) -> None:
        settings = LineageSettings(etl_enabled=True, cache_ttl_sec=60, max_hierarchy_depth=2)

        assert LineageSettings.from_dict(settings.to_dict()) == settings
