"""Error taxonomy for skill verification."""


class VerificationError(Exception):
    """Base error for a failed verification attempt.

    Every error carries a human-readable ``reason`` suitable for showing to
    the user, and a ``retryable`` flag telling the caller whether re-invoking
    the whole flow may succeed.
    """

    code = "verification_error"
    retryable = False

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UserNotFound(VerificationError):
    """The evidence subject does not exist on the evidence source."""

    code = "user_not_found"

    def __init__(self, username: str) -> None:
        super().__init__(f'GitHub user "{username}" not found')
        self.username = username


class FetchFailed(VerificationError):
    """Transient network or service error while collecting evidence."""

    code = "fetch_failed"

    def __init__(
        self,
        reason: str,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(reason)
        self.status_code = status_code
        if retryable is None:
            retryable = status_code is None or status_code >= 500
        self.retryable = retryable


class NoEvidence(VerificationError):
    """Evidence exists but carries no usable signal."""

    code = "no_evidence"


class IdentityMismatch(VerificationError):
    """The OAuth-authenticated account differs from the claimed profile."""

    code = "identity_mismatch"

    def __init__(self, claimed: str, authenticated: str) -> None:
        super().__init__("GitHub account does not match profile URL")
        self.claimed = claimed
        self.authenticated = authenticated


class SecurityContextChanged(VerificationError):
    """The authenticated session changed while a verification was running."""

    code = "security_context_changed"

    def __init__(self, reason: str = "Session changed. Login again.") -> None:
        super().__init__(reason)


class InvalidProfileUrl(VerificationError):
    """The claimed GitHub profile URL could not be parsed."""

    code = "invalid_profile_url"
