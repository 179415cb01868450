from decimal import ROUND_HALF_UP, Decimal

from domain.models import Kind, Rating


SCORES = range(1, 6)


def check_score(score: int) -> int:
    if isinstance(score, bool) or not isinstance(score, int) or score not in SCORES:
        raise ValueError(f"Score must be an integer from 1 to 5, got {score!r}.")
    return score


def average_rating(ratings: list[Rating], kind: Kind, item_id: str) -> float | None:
    """Mean score for one item, half-up to one decimal place."""
    scores = [r.score for r in ratings if r.kind == kind and r.item_id == item_id]
    if not scores:
        return None
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
