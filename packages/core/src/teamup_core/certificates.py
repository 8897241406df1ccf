"""Certificate evidence path.

A lower-trust alternative to GitHub OAuth: text extracted from an uploaded
certificate is checked for the user's declared name and declared skills by
plain substring containment. The check is intentionally weak; it does not
verify identity and must stay that way.
"""

import base64
import binascii
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import structlog

from teamup_core.errors import FetchFailed
from teamup_core.evidence import CertificateEvidence, CertificateUpload

logger = structlog.get_logger()

DEFAULT_MIN_SKILL_LENGTH = 3
UNKNOWN_NAME = "Unknown"

_NON_ALPHA_RE = re.compile(r"[^a-z\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lower-case, alphabetic-only, whitespace-collapsed."""
    cleaned = _NON_ALPHA_RE.sub(" ", (text or "").lower())
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def normalize_words(text: str) -> list[str]:
    return [w for w in normalize_text(text).split(" ") if w]


def has_name_tokens(profile_name: str) -> bool:
    return bool(normalize_words(profile_name))


def is_name_match(document_text: str, profile_name: str) -> bool:
    """True iff every token of the declared name appears in the document.

    A name with no alphabetic token never matches.
    """
    profile_words = normalize_words(profile_name)
    if not profile_words:
        return False
    document_words = set(normalize_words(document_text))
    return all(word in document_words for word in profile_words)


def extract_matching_name(document_text: str, profile_name: str) -> str:
    """Declared-name tokens present in the document, in declared order."""
    document_words = set(normalize_words(document_text))
    matched = [w for w in normalize_words(profile_name) if w in document_words]
    return " ".join(matched) or UNKNOWN_NAME


def infer_certificate_skills(
    document_text: str,
    profile_skills: list[str],
    min_length: int = DEFAULT_MIN_SKILL_LENGTH,
) -> list[str]:
    """Declared skills whose normalized form is a substring of the document."""
    clean_text = normalize_text(document_text)
    matched: list[str] = []
    for skill in profile_skills:
        normalized = normalize_text(skill)
        if len(normalized) < min_length:
            continue
        if normalized in clean_text and skill not in matched:
            matched.append(skill)
    return matched


@dataclass
class CertificateAnalysis:
    """Outcome of analysing one certificate."""

    extracted_name: str
    inferred_skills: list[str]
    name_match: bool
    reason: str
    course_topics: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "extractedName": self.extracted_name,
            "inferredSkills": list(self.inferred_skills),
            "courseTopics": list(self.course_topics),
            "nameMatch": self.name_match,
            "reason": self.reason,
        }


def analyze_certificate_text(
    document_text: str,
    profile_name: str,
    profile_skills: list[str],
    min_skill_length: int = DEFAULT_MIN_SKILL_LENGTH,
) -> CertificateAnalysis:
    name_match = is_name_match(document_text, profile_name)
    inferred = infer_certificate_skills(document_text, profile_skills, min_skill_length)

    if not name_match:
        reason = "Name does not match profile, verify manually"
    elif inferred:
        reason = "Certificate matches profile skills"
    else:
        reason = "Name verified, but no profile skills matched"

    return CertificateAnalysis(
        extracted_name=extract_matching_name(document_text, profile_name),
        inferred_skills=inferred,
        name_match=name_match,
        reason=reason,
    )


# ============================================================================
# OCR collaborators
# ============================================================================


class OcrClient(Protocol):
    """OCR interface that extracts text from binary image payloads."""

    async def extract_text(self, payload: bytes, *, mime: str | None = None) -> str:
        ...


class NoopOcrClient(OcrClient):
    """Fallback OCR client that returns an empty string."""

    async def extract_text(self, payload: bytes, *, mime: str | None = None) -> str:  # noqa: ARG002 - keep signature
        return ""


class HttpOcrClient(OcrClient):
    """Delegates text extraction to an external OCR service.

    The service receives ``{"imageBase64": ..., "mime": ...}`` and answers
    ``{"text": ...}``.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def extract_text(self, payload: bytes, *, mime: str | None = None) -> str:
        body = {"imageBase64": base64.b64encode(payload).decode("ascii"), "mime": mime}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(self.url, json=body)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchFailed(
                "Certificate text extraction failed", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailed(f"Certificate text extraction failed: {e}") from e

        return str(data.get("text") or "")


def decode_image(image_base64: str) -> bytes:
    """Decode a base64 payload, accepting ``data:`` URLs."""
    if image_base64.startswith("data:") and "," in image_base64:
        image_base64 = image_base64.split(",", 1)[1]
    try:
        return base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("certificate image is not valid base64") from e


class CertificateAnalyzer:
    """Runs the certificate path over pre-extracted text or raw images."""

    def __init__(
        self,
        ocr_client: OcrClient | None = None,
        min_skill_length: int = DEFAULT_MIN_SKILL_LENGTH,
    ) -> None:
        self.ocr_client = ocr_client or NoopOcrClient()
        self.min_skill_length = min_skill_length

    async def extract_text(self, text: str | None, image_base64: str | None) -> str:
        if text is not None:
            return text
        if image_base64 is None:
            raise ValueError("certificate has neither text nor image")
        return await self.ocr_client.extract_text(decode_image(image_base64))

    async def read(self, upload: CertificateUpload) -> CertificateEvidence:
        """Text of one uploaded certificate, running OCR for images."""
        text = await self.extract_text(upload.text, upload.image_base64)
        return CertificateEvidence(file_name=upload.file_name, text=text)

    def analyze_evidence(
        self,
        evidence: CertificateEvidence,
        profile_name: str,
        profile_skills: list[str],
    ) -> CertificateAnalysis:
        analysis = analyze_certificate_text(
            evidence.text, profile_name, profile_skills, self.min_skill_length
        )
        logger.info(
            "Certificate analysed",
            name_match=analysis.name_match,
            inferred_skills=len(analysis.inferred_skills),
        )
        return analysis

    async def analyze(
        self,
        profile_name: str,
        profile_skills: list[str],
        *,
        text: str | None = None,
        image_base64: str | None = None,
        file_name: str = "certificate",
    ) -> CertificateAnalysis:
        upload = CertificateUpload(file_name, text=text, image_base64=image_base64)
        return self.analyze_evidence(await self.read(upload), profile_name, profile_skills)
