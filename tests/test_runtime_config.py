"""Tests for runtime configuration: YAML defaults and environment overrides."""

from pathlib import Path

from askdata.config.runtime_config import (
    DEFAULT_MAX_STEPS,
    MAX_STEPS_MAX,
    MAX_STEPS_MIN,
    get_catalog_path,
    get_default_model,
    get_directive_context,
    get_max_steps,
)


class TestMaxSteps:
    """The step ceiling."""

    def test_default(self):
        assert get_max_steps() == DEFAULT_MAX_STEPS == 100

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ASKDATA_MAX_STEPS", "25")
        assert get_max_steps() == 25

    def test_clamped_below_minimum(self, monkeypatch, caplog):
        monkeypatch.setenv("ASKDATA_MAX_STEPS", "0")
        assert get_max_steps() == MAX_STEPS_MIN
        assert "below minimum" in caplog.text

    def test_clamped_above_maximum(self, monkeypatch, caplog):
        monkeypatch.setenv("ASKDATA_MAX_STEPS", "5000")
        assert get_max_steps() == MAX_STEPS_MAX
        assert "exceeds maximum" in caplog.text

    def test_non_integer_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("ASKDATA_MAX_STEPS", "lots")
        assert get_max_steps() == DEFAULT_MAX_STEPS
        assert "ASKDATA_MAX_STEPS" in caplog.text


class TestModelAndCatalogPath:
    """Model name and catalog location."""

    def test_default_model(self):
        assert get_default_model() == "gpt-4.1"

    def test_model_env_override(self, monkeypatch):
        monkeypatch.setenv("ASKDATA_MODEL", "local-llama")
        assert get_default_model() == "local-llama"

    def test_bundled_catalog_path(self):
        path = get_catalog_path()
        assert path.name == "tool_catalog.yaml"
        assert path.exists()

    def test_catalog_path_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ASKDATA_CATALOG_PATH", str(tmp_path / "c.yaml"))
        assert get_catalog_path() == Path(tmp_path / "c.yaml")


class TestDirectiveContext:
    """Context blocks for phase directives."""

    def test_defaults_from_yaml(self):
        context = get_directive_context()
        assert context.sql_dialect == "sqlite"
        assert context.possible_entities == ("companies", "people", "accounts")

    def test_verified_queries_capped_at_three(self):
        context = get_directive_context()
        assert len(context.verified_queries) == 3
        assert all("question" in q and "sql" in q for q in context.verified_queries)

    def test_dialect_env_override(self, monkeypatch):
        monkeypatch.setenv("ASKDATA_SQL_DIALECT", "postgres")
        assert get_directive_context().sql_dialect == "postgres"
