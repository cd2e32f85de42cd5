"""
Color Inference: Pick a Deck Identity from the Pool.

Works only on ColorTagView: card identity, color tags and rank. It has no
access to card names, rules text or any other descriptive field, so the
choice is a pure function of what was retrieved and in what order.

Rules:
1. Every card adds one to the tally of each color it carries
2. Primary is the color with the highest tally
3. Secondary is the next highest, unless the primary's share of the pool
   reaches the mono-color threshold or no other color appears
4. Tally ties go to the color whose cards have the lower average rank,
   then to the alphabetically first ink name
"""

import logging
from collections import defaultdict
from collections.abc import Sequence

from inkforge.filtering.candidate_pool import ColorChoice, ColorTagView
from inkforge.models.failure import InsufficientCandidatesError

logger = logging.getLogger(__name__)


def _ordering_key(
    color: str,
    tally: dict[str, int],
    rank_sum: dict[str, int],
) -> tuple[int, float, str]:
    average_rank = rank_sum[color] / tally[color]
    return (-tally[color], average_rank, color)


def infer_colors(views: Sequence[ColorTagView], mono_color_threshold: float) -> ColorChoice:
    """
    Infer a 1-2 color identity.

    Args:
        views: Color tag views of the legal candidate pool
        mono_color_threshold: Share of the pool at which the primary color
            alone makes up the deck

    Raises:
        InsufficientCandidatesError: If there is nothing to infer from
    """
    if not views:
        raise InsufficientCandidatesError(
            requested=1,
            available=0,
            detail="No legal candidates to infer a color identity from",
        )

    tally: dict[str, int] = defaultdict(int)
    rank_sum: dict[str, int] = defaultdict(int)
    for view in views:
        for color in view.colors:
            tally[color] += 1
            rank_sum[color] += view.rank

    ordered = sorted(tally, key=lambda c: _ordering_key(c, tally, rank_sum))
    primary = ordered[0]
    share = tally[primary] / len(views)

    secondary: str | None = None
    if len(ordered) > 1 and share < mono_color_threshold:
        secondary = ordered[1]

    choice = ColorChoice(primary=primary, secondary=secondary)
    logger.info(
        "colors_inferred",
        extra={
            "primary": primary,
            "secondary": secondary,
            "mono": choice.is_mono,
            "primary_share": round(share, 3),
            "tally": dict(tally),
        },
    )
    return choice
