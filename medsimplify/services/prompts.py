"""
Prompt templates for report simplification.

Two response contracts exist and a deployment uses exactly one:
- text: the model writes plain text under fixed headings
- json: the model returns a JSON object with simplified, visual_keywords
  and short_summary
"""

TRUNCATION_MARKER = "\n\n[TRUNCATED]"

SECTION_HEADINGS = (
    "What this report says",
    "What the results mean",
    "What to do next",
)

_PERSONA = """You are a helpful medical-language simplifier. Convert clinical medical report text into clear, empathetic, patient-friendly language.
- Keep medical accuracy. Do not invent findings and do not give a diagnosis.
- Explain lab values simply (what they mean, normal ranges when relevant).
- Use short sentences. Keep every section brief.
- Provide a short "what to do" section (1-3 action items) that includes talking to a doctor."""

TEXT_SYSTEM_PROMPT = _PERSONA + """
- Output plain text using exactly these section headings, in this order:
""" + "\n".join(f"  ## {heading}" for heading in SECTION_HEADINGS)

JSON_SYSTEM_PROMPT = _PERSONA + """
- Output JSON with keys: "simplified" (string), "visual_keywords" (array of 1-4 short strings), "short_summary" (string)."""

TEXT_FORMAT_DIRECTIVE = "Return plain text only, using the section headings above. No JSON, no extra commentary."
JSON_FORMAT_DIRECTIVE = "Return JSON only (no extra commentary)."

USER_PROMPT_TEMPLATE = '''Input report:
"""{report}"""
Target language: {target_lang}
Tone: {tone}
{format_directive}'''


def build_user_prompt(report: str, target_lang: str, tone: str, contract: str) -> str:
    """Embed the report and request details in the user instruction."""
    directive = JSON_FORMAT_DIRECTIVE if contract == "json" else TEXT_FORMAT_DIRECTIVE
    return USER_PROMPT_TEMPLATE.format(
        report=report,
        target_lang=target_lang,
        tone=tone,
        format_directive=directive
    )


def system_prompt_for(contract: str) -> str:
    """Fixed system instruction for a response contract."""
    return JSON_SYSTEM_PROMPT if contract == "json" else TEXT_SYSTEM_PROMPT
