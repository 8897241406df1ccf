"""Certificate analysis endpoint used by the profile page before upload."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from teamup_core import CertificateAnalyzer
from teamup_core.certificates import has_name_tokens
from teamup_api.services.verification_service import get_certificate_analyzer

router = APIRouter()


class AnalyzeCertificateRequest(BaseModel):
    """Certificate to analyse against the user's profile."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ocr_text: str | None = Field(default=None, description="Text already extracted client-side")
    image_base64: str | None = Field(default=None, description="Certificate image (base64)")
    profile_name: str | None = None
    profile_skills: list[str] = Field(default_factory=list)


@router.post("/analyzeCertificate")
async def analyze_certificate(
    request: AnalyzeCertificateRequest,
    analyzer: Annotated[CertificateAnalyzer, Depends(get_certificate_analyzer)],
) -> dict[str, Any]:
    """Analyse one certificate.

    Returns the matched name fragment, the declared skills found in the
    text, whether every name token matched, and a reason string.
    """
    if not request.profile_name or not has_name_tokens(request.profile_name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing profileName",
        )
    if not request.ocr_text and not request.image_base64:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing ocrText or imageBase64",
        )

    try:
        analysis = await analyzer.analyze(
            request.profile_name,
            request.profile_skills,
            text=request.ocr_text or None,
            image_base64=None if request.ocr_text else request.image_base64,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return analysis.to_dict()
