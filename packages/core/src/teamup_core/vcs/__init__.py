"""Evidence-source clients for code-hosting accounts."""

from teamup_core.vcs.github import (
    GitHubEvidenceClient,
    calculate_language_usage,
    extract_github_username,
    validate_github_url,
)

__all__ = [
    "GitHubEvidenceClient",
    "calculate_language_usage",
    "extract_github_username",
    "validate_github_url",
]
