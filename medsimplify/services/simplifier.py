"""
Report simplifier service for MedSimplify.

Builds the prompt, makes the single text-generation call and turns the
reply into a SimplificationResult. Upstream failures never escape: they
are logged and replaced by a fixed degraded result.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from medsimplify.config import Settings
from medsimplify.core.errors import ValidationError
from medsimplify.core.llm_engine import TextGenerator
from medsimplify.services.prompts import (
    TRUNCATION_MARKER,
    build_user_prompt,
    system_prompt_for,
)
from medsimplify.utils.logger import get_logger

logger = get_logger("simplifier")


DEFAULT_TARGET_LANG = "en"
DEFAULT_TONE = "friendly"

# Plain-text replies carry no keywords of their own
STATIC_VISUAL_KEYWORDS = ("medical checkup", "doctor consultation", "healthy lifestyle")

DEGRADED_MESSAGE = (
    "Sorry, we could not simplify this report right now. "
    "Please try again later."
)

SUMMARY_LINES = 3

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_HEADING_MARKER = re.compile(r"^#+\s*")


@dataclass(frozen=True)
class SimplificationRequest:
    """A validated simplification request."""

    report: str
    target_lang: str = DEFAULT_TARGET_LANG
    tone: str = DEFAULT_TONE

    @classmethod
    def create(
        cls,
        report: Optional[str],
        target_lang: Optional[str] = None,
        tone: Optional[str] = None
    ) -> "SimplificationRequest":
        """
        Validate raw input and build a request.

        Raises:
            ValidationError: If report is missing or blank
        """
        clean = (report or "").strip()
        if not clean:
            raise ValidationError("report text required")

        return cls(
            report=clean,
            target_lang=(target_lang or "").strip() or DEFAULT_TARGET_LANG,
            tone=(tone or "").strip() or DEFAULT_TONE
        )


@dataclass
class SimplificationResult:
    """Structured outcome of a simplification."""

    simplified: str = ""
    short_summary: str = ""
    visual_keywords: List[str] = field(default_factory=list)
    degraded: bool = False


def degraded_result() -> SimplificationResult:
    """Fixed result returned when the text-generation service fails."""
    return SimplificationResult(
        simplified=DEGRADED_MESSAGE,
        short_summary="",
        visual_keywords=[],
        degraded=True
    )


def truncate_report(text: str, limit: int) -> str:
    """Cut text to `limit` characters, appending a marker when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def summarize_lines(text: str, lines: int = SUMMARY_LINES) -> str:
    """First few non-empty lines of a reply, joined into one line."""
    picked = []
    for line in text.splitlines():
        line = _HEADING_MARKER.sub("", line.strip())
        if line:
            picked.append(line)
        if len(picked) == lines:
            break
    return " ".join(picked)


def parse_text_reply(raw: str) -> SimplificationResult:
    """Plain-text contract: reply verbatim, summary from its first lines, static keywords."""
    return SimplificationResult(
        simplified=raw,
        short_summary=summarize_lines(raw),
        visual_keywords=list(STATIC_VISUAL_KEYWORDS)
    )


def _load_json_object(raw: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from the reply, or from the outermost {...} inside it."""
    candidates = [raw]
    match = _JSON_OBJECT.search(raw)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def parse_json_reply(raw: str) -> SimplificationResult:
    """
    JSON contract: strict parse, then embedded-object parse, then raw text.

    Returns:
        SimplificationResult; never raises
    """
    parsed = _load_json_object(raw)
    simplified = parsed.get("simplified") if parsed is not None else None
    if not isinstance(simplified, str) or not simplified.strip():
        logger.info("Reply has no usable JSON 'simplified' field, wrapping raw text")
        return SimplificationResult(
            simplified=raw,
            short_summary=summarize_lines(raw),
            visual_keywords=[]
        )

    keywords = parsed.get("visual_keywords") or []
    if not isinstance(keywords, list):
        keywords = []

    summary = parsed.get("short_summary")

    return SimplificationResult(
        simplified=simplified,
        short_summary=summary if isinstance(summary, str) else "",
        visual_keywords=[k.strip() for k in keywords if isinstance(k, str) and k.strip()]
    )


class ReportSimplifier:
    """
    Rewrites medical reports in patient-friendly language.

    Performs:
    - Input truncation
    - Prompt construction for the configured response contract
    - One text-generation call (no retries)
    - Reply parsing, or a degraded result on failure
    """

    def __init__(self, generator: TextGenerator, settings: Settings):
        self.generator = generator
        self.max_input_chars = settings.max_input_chars
        self.contract = settings.response_contract
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens

    def build_messages(self, request: SimplificationRequest) -> tuple[str, str]:
        """Return the (system, user) instructions for a request."""
        report = truncate_report(request.report, self.max_input_chars)
        user = build_user_prompt(report, request.target_lang, request.tone, self.contract)
        return system_prompt_for(self.contract), user

    async def simplify(self, request: SimplificationRequest) -> SimplificationResult:
        """
        Simplify a validated report.

        Args:
            request: Validated SimplificationRequest

        Returns:
            Parsed result, or the degraded result if the upstream call failed
        """
        system, user = self.build_messages(request)

        try:
            raw = await self.generator.generate(
                system,
                user,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            logger.error(
                "Simplification failed, returning degraded result",
                provider=self.generator.provider,
                error=str(e),
                error_type=type(e).__name__
            )
            return degraded_result()

        if self.contract == "json":
            result = parse_json_reply(raw)
        else:
            result = parse_text_reply(raw)

        logger.info(
            "Report simplified",
            report_chars=len(request.report),
            truncated=len(request.report) > self.max_input_chars,
            contract=self.contract,
            keyword_count=len(result.visual_keywords)
        )
        return result
