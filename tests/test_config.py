"""Tests for configuration loading."""

import pytest
import yaml

from ledger_recon_ai.config import (
    ReconConfig,
    ReconContext,
    generate_default_config,
    load_config,
)
from ledger_recon_ai.utils.exceptions import ConfigurationError


class TestLoadConfig:
    def test_defaults_without_file(self, monkeypatch):
        monkeypatch.delenv("LEDGER_RECON_MODEL", raising=False)
        monkeypatch.delenv("LEDGER_RECON_BASE_URL", raising=False)
        config = load_config(None)

        assert config.pipeline.candidate_policy == "last"
        assert config.export.sheet_names.matches == "Matches"
        assert config.config_file_path is None

    def test_yaml_is_merged_over_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LEDGER_RECON_MODEL", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "llm": {"model": "gemini-2.0-flash"},
                    "pipeline": {"candidate_policy": "first", "party_a_label": "Supplier"},
                }
            )
        )

        config = load_config(path)

        assert config.llm.model == "gemini-2.0-flash"
        assert config.llm.temperature == 0.0
        assert config.pipeline.candidate_policy == "first"
        assert config.pipeline.party_a_label == "Supplier"
        assert config.pipeline.party_b_label == "Party B"
        assert config.config_file_path == str(path)

    def test_environment_overrides_model(self, monkeypatch):
        monkeypatch.setenv("LEDGER_RECON_MODEL", "gpt-4.1")
        monkeypatch.setenv("LEDGER_RECON_BASE_URL", "https://llm.internal/v1")
        config = load_config(None)

        assert config.llm.model == "gpt-4.1"
        assert config.llm.base_url == "https://llm.internal/v1"

    def test_invalid_policy_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pipeline:\n  candidate_policy: random\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping_yaml_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_generated_file_loads_back(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LEDGER_RECON_MODEL", raising=False)
        path = tmp_path / "nested" / "config.yaml"
        generate_default_config(path)

        assert "api_key" not in path.read_text()
        assert load_config(path).export.title_template == ReconConfig().export.title_template


class TestReconContext:
    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        context = ReconContext.from_config(ReconConfig())

        assert context.api_key == "sk-env"
        assert context.http_client is None

    def test_configured_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        config = ReconConfig()
        config.llm.api_key = "sk-file"

        assert ReconContext.from_config(config).api_key == "sk-file"
