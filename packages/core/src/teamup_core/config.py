"""Configuration file parser for .teamup.yml files."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


@dataclass
class GitHubConfig:
    """Configuration for the GitHub evidence fetcher."""

    base_url: str = "https://api.github.com"
    per_page: int = 100
    max_pages: int = 5
    timeout_seconds: float = 20.0
    retry_attempts: int = 1
    retry_base_delay: float = 0.5
    language_usage: bool = True
    language_usage_repo_limit: int = 10


@dataclass
class VerificationConfig:
    """Configuration for the verification record manager."""

    operation_timeout_seconds: float = 20.0
    persist_without_evidence: bool = True
    certificate_min_skill_length: int = 3


@dataclass
class TeamUpConfig:
    """Complete skill verification configuration."""

    version: str = "1"
    github: GitHubConfig = field(default_factory=GitHubConfig)
    verification: VerificationConfig = field(default_factory=VerificationConfig)


def parse_config(content: str | dict[str, Any]) -> TeamUpConfig:
    """Parse configuration from YAML string or dict."""
    if isinstance(content, str):
        data = yaml.safe_load(content) or {}
    else:
        data = content

    config = TeamUpConfig()
    config.version = str(data.get("version", "1"))

    if "github" in data:
        g = data["github"] or {}
        defaults = GitHubConfig()
        config.github = GitHubConfig(
            base_url=str(g.get("base_url", defaults.base_url)).rstrip("/"),
            per_page=int(g.get("per_page", defaults.per_page)),
            max_pages=int(g.get("max_pages", defaults.max_pages)),
            timeout_seconds=float(g.get("timeout", defaults.timeout_seconds)),
            retry_attempts=int(g.get("retry_attempts", defaults.retry_attempts)),
            retry_base_delay=float(g.get("retry_base_delay", defaults.retry_base_delay)),
            language_usage=bool(g.get("language_usage", defaults.language_usage)),
            language_usage_repo_limit=int(
                g.get("language_usage_repo_limit", defaults.language_usage_repo_limit)
            ),
        )

    if "verification" in data:
        v = data["verification"] or {}
        defaults = VerificationConfig()
        config.verification = VerificationConfig(
            operation_timeout_seconds=float(
                v.get("operation_timeout", defaults.operation_timeout_seconds)
            ),
            persist_without_evidence=bool(
                v.get("persist_without_evidence", defaults.persist_without_evidence)
            ),
            certificate_min_skill_length=int(
                v.get("certificate_min_skill_length", defaults.certificate_min_skill_length)
            ),
        )

    if config.github.max_pages < 1:
        raise ValueError("github.max_pages must be at least 1")
    if not 1 <= config.github.per_page <= 100:
        raise ValueError("github.per_page must be between 1 and 100")

    return config


def load_config(path: Path | str) -> TeamUpConfig:
    """Load configuration from a file, or from a directory containing one."""
    path = Path(path)

    if path.is_file():
        logger.info(f"Loading config from {path}")
        return parse_config(path.read_text())

    config_names = [".teamup.yml", ".teamup.yaml", "teamup.yml"]

    for name in config_names:
        config_file = path / name
        if config_file.exists():
            logger.info(f"Loading config from {config_file}")
            return parse_config(config_file.read_text())

    logger.info("No config file found, using defaults")
    return TeamUpConfig()


# Example configuration for documentation
EXAMPLE_CONFIG = """
# .teamup.yml - TeamUp skill verification configuration
version: "1"

github:
  base_url: https://api.github.com
  per_page: 100
  max_pages: 5          # pages of repositories to scan
  timeout: 20           # seconds per request
  retry_attempts: 1     # per-request attempts on 5xx / network errors, never on 403
  retry_base_delay: 0.5
  language_usage: true
  language_usage_repo_limit: 10

verification:
  operation_timeout: 20         # seconds for the whole evidence collection
  persist_without_evidence: true
  certificate_min_skill_length: 3
"""
