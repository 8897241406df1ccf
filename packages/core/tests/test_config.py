"""Tests for configuration module."""
import pytest
from teamup_core.config import (
    EXAMPLE_CONFIG,
    TeamUpConfig,
    load_config,
    parse_config,
)


class TestParseConfig:
    """Tests for parse_config function."""

    def test_parse_empty_config(self):
        """Empty config returns defaults."""
        config = parse_config("")
        assert config.version == "1"
        assert config.github.base_url == "https://api.github.com"
        assert config.github.per_page == 100
        assert config.github.max_pages == 5
        assert config.github.retry_attempts == 1
        assert config.verification.operation_timeout_seconds == 20
        assert config.verification.persist_without_evidence is True

    def test_parse_full_config(self):
        """Full config with all options."""
        yaml_content = """
version: "2"
github:
  base_url: https://github.example.com/api/v3/
  per_page: 50
  max_pages: 2
  timeout: 5
  retry_attempts: 4
  retry_base_delay: 0.1
  language_usage: false
  language_usage_repo_limit: 3
verification:
  operation_timeout: 8
  persist_without_evidence: false
  certificate_min_skill_length: 4
"""
        config = parse_config(yaml_content)
        assert config.version == "2"
        assert config.github.base_url == "https://github.example.com/api/v3"
        assert config.github.per_page == 50
        assert config.github.max_pages == 2
        assert config.github.timeout_seconds == 5.0
        assert config.github.retry_attempts == 4
        assert config.github.language_usage is False
        assert config.github.language_usage_repo_limit == 3
        assert config.verification.operation_timeout_seconds == 8.0
        assert config.verification.persist_without_evidence is False
        assert config.verification.certificate_min_skill_length == 4

    def test_parse_dict(self):
        """Config can be parsed from a dict."""
        config = parse_config({"github": {"max_pages": 1}})
        assert config.github.max_pages == 1
        assert config.github.per_page == 100

    def test_partial_section_keeps_defaults(self):
        config = parse_config("verification:\n  operation_timeout: 3\n")
        assert config.verification.operation_timeout_seconds == 3.0
        assert config.verification.certificate_min_skill_length == 3

    @pytest.mark.parametrize(
        "content",
        ["github:\n  max_pages: 0\n", "github:\n  per_page: 0\n", "github:\n  per_page: 101\n"],
    )
    def test_invalid_paging(self, content):
        with pytest.raises(ValueError):
            parse_config(content)

    def test_example_config_parses(self):
        config = parse_config(EXAMPLE_CONFIG)
        assert config.github.max_pages == 5
        assert config.verification.persist_without_evidence is True


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("github:\n  max_pages: 3\n")
        assert load_config(path).github.max_pages == 3

    def test_load_from_directory(self, tmp_path):
        (tmp_path / ".teamup.yml").write_text("version: '7'\n")
        assert load_config(tmp_path).version == "7"

    def test_alternate_file_names(self, tmp_path):
        (tmp_path / "teamup.yml").write_text("version: '8'\n")
        assert load_config(str(tmp_path)).version == "8"

    def test_defaults_when_missing(self, tmp_path):
        config = load_config(tmp_path)
        assert isinstance(config, TeamUpConfig)
        assert config.version == "1"
