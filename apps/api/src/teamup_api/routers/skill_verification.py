"""Skill verification endpoints.

GitHub verification is a two-step OAuth flow: ``/github/start`` validates
the claimed profile URL and returns the GitHub authorize URL, and
``/github/complete`` exchanges the code, checks the account against the
claimed profile, and records the verification.
"""

from typing import Annotated, Any, Callable

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from teamup_core import (
    CertificateEvidenceSource,
    CertificateUpload,
    DeclaredSkill,
    FetchFailed,
    GitHubEvidenceSource,
    InvalidationReason,
    OAuthIdentity,
    VerificationRecordManager,
    validate_github_url,
)
from teamup_core.certificates import has_name_tokens
from teamup_api.auth.dependencies import get_current_user, get_session_check
from teamup_api.auth.github import GitHubOAuth
from teamup_api.auth.jwt import TokenData
from teamup_api.config import settings
from teamup_api.services.verification_service import (
    OAuthStateStore,
    get_github_oauth,
    get_oauth_state_store,
    get_verification_manager,
)

router = APIRouter()
logger = structlog.get_logger()

CurrentUser = Annotated[TokenData, Depends(get_current_user)]
Manager = Annotated[VerificationRecordManager, Depends(get_verification_manager)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GitHubStartRequest(CamelModel):
    """Start GitHub verification for a claimed profile."""

    profile_url: str


class GitHubStartResponse(CamelModel):
    authorize_url: str
    state: str


class GitHubCompleteRequest(CamelModel):
    """OAuth callback parameters plus the user's current declared skills."""

    code: str
    state: str
    declared_skills: list[DeclaredSkill] = Field(default_factory=list)


class CertificateItem(CamelModel):
    file_name: str
    ocr_text: str | None = None
    image_base64: str | None = None


class CertificateVerificationRequest(CamelModel):
    profile_name: str
    declared_skills: list[DeclaredSkill] = Field(default_factory=list)
    certificates: list[CertificateItem] = Field(min_length=1)

    @field_validator("profile_name")
    @classmethod
    def profile_name_has_letters(cls, v: str) -> str:
        if not has_name_tokens(v):
            raise ValueError("profileName must contain a name")
        return v


class InvalidateRequest(CamelModel):
    reason: InvalidationReason = InvalidationReason.MANUAL


class ProfileSkillsRequest(CamelModel):
    skills: list[DeclaredSkill]


class ProfileSkillsResponse(CamelModel):
    reverification_required: bool


@router.post("/github/start")
async def start_github_verification(
    request: GitHubStartRequest,
    user: CurrentUser,
    states: Annotated[OAuthStateStore, Depends(get_oauth_state_store)],
    oauth: Annotated[GitHubOAuth, Depends(get_github_oauth)],
) -> dict[str, str]:
    """Validate the claimed profile URL and begin the OAuth handshake."""
    username = validate_github_url(request.profile_url)
    state = states.issue(user.user_id, request.profile_url)

    logger.info("GitHub verification started", user_id=user.user_id, claimed=username)
    response = GitHubStartResponse(
        authorize_url=oauth.get_authorize_url(
            state=state, redirect_uri=settings.GITHUB_OAUTH_REDIRECT_URI
        ),
        state=state,
    )
    return response.model_dump(by_alias=True)


@router.post("/github/complete")
async def complete_github_verification(
    request: GitHubCompleteRequest,
    user: CurrentUser,
    manager: Manager,
    states: Annotated[OAuthStateStore, Depends(get_oauth_state_store)],
    oauth: Annotated[GitHubOAuth, Depends(get_github_oauth)],
    session_check: Annotated[Callable[[], str | None], Depends(get_session_check)],
) -> dict[str, Any]:
    """Finish the OAuth handshake and record a GitHub verification."""
    pending = states.consume(request.state)
    if pending is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OAuth state",
        )

    access_token = await oauth.exchange_code(
        request.code, redirect_uri=settings.GITHUB_OAUTH_REDIRECT_URI
    )
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="GitHub authorization failed",
        )

    github_user = await oauth.get_user(access_token)
    if not github_user or not github_user.get("login"):
        raise FetchFailed("Could not read the authenticated GitHub account")

    source = GitHubEvidenceSource(
        claimed_profile_url=pending.profile_url,
        identity=OAuthIdentity(
            username=github_user["login"],
            locked_user_id=pending.user_id,
            access_token=access_token,
        ),
    )
    record = await manager.verify(
        user.user_id,
        source,
        request.declared_skills,
        session_check=session_check,
    )
    return record.to_public_dict()


@router.post("/certificates")
async def verify_certificates(
    request: CertificateVerificationRequest,
    user: CurrentUser,
    manager: Manager,
    session_check: Annotated[Callable[[], str | None], Depends(get_session_check)],
) -> dict[str, Any]:
    """Record a certificate-based verification."""
    try:
        uploads = tuple(
            CertificateUpload(
                file_name=item.file_name,
                text=item.ocr_text,
                image_base64=None if item.ocr_text is not None else item.image_base64,
            )
            for item in request.certificates
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    source = CertificateEvidenceSource(profile_name=request.profile_name, certificates=uploads)
    try:
        record = await manager.verify(
            user.user_id,
            source,
            request.declared_skills,
            session_check=session_check,
        )
    except ValueError as e:
        # undecodable certificate image
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return record.to_public_dict()


@router.get("/active")
async def get_active_verification(user: CurrentUser, manager: Manager) -> dict[str, Any] | None:
    """The user's current verified record, or null."""
    record = await manager.get_active(user.user_id)
    return record.to_public_dict() if record else None


@router.post("/invalidate", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_verification(
    request: InvalidateRequest,
    user: CurrentUser,
    manager: Manager,
) -> Response:
    """Invalidate the user's active verification. Idempotent."""
    await manager.invalidate(user.user_id, request.reason)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/profile-skills")
async def check_profile_skills(
    request: ProfileSkillsRequest,
    user: CurrentUser,
    manager: Manager,
) -> dict[str, bool]:
    """Check a pending profile edit; must run before the edit is saved."""
    required = await manager.apply_profile_edit(user.user_id, request.skills)
    return ProfileSkillsResponse(reverification_required=required).model_dump(by_alias=True)
