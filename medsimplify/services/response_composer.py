"""
Maps a SimplificationResult onto the public response payload.

Image hints are decorative search links; they are never fetched or
validated.
"""

from typing import List, Sequence
from urllib.parse import quote

from medsimplify.models.schemas import SimplifyResponse, VisualCard
from medsimplify.services.simplifier import SimplificationResult

MAX_VISUAL_CARDS = 4
DEFAULT_CARD_KEYWORDS = ("doctor-patient", "heart")

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def image_hint_url(keyword: str, template: str) -> str:
    """Build an image-search link for a keyword."""
    return template.format(keyword=quote(keyword, safe=_URI_COMPONENT_SAFE))


def build_visual_cards(keywords: Sequence[str], template: str) -> List[VisualCard]:
    """
    Map up to four keywords to visual cards.

    Falls back to the default cards when no usable keyword is present,
    so the list always holds between one and four cards.
    """
    usable = [k.strip() for k in keywords if k and k.strip()][:MAX_VISUAL_CARDS]
    if not usable:
        usable = list(DEFAULT_CARD_KEYWORDS)

    return [
        VisualCard(keyword=keyword, image_hint=image_hint_url(keyword, template))
        for keyword in usable
    ]


def compose_response(result: SimplificationResult, image_hint_template: str) -> SimplifyResponse:
    """Build the client payload for a simplification result."""
    return SimplifyResponse(
        simplified=result.simplified or "",
        short_summary=result.short_summary or "",
        visual_cards=build_visual_cards(result.visual_keywords, image_hint_template)
    )
