"""Choosing today's lunch from a room's catalog."""

import logging
import random

from domain.errors import EmptyPool
from domain.models import HistoryItem, Kind, RoomData


logger = logging.getLogger(__name__)


COOLDOWN_WINDOW = 3


class Candidate:
    def __init__(self, *, id: str, kind: Kind, name: str, place_name: str) -> None:
        self.id = id
        self.kind = kind
        self.name = name
        self.place_name = place_name

    def __repr__(self) -> str:
        return f"<Candidate(kind={self.kind.value}, name={self.name})>"


class Draw:
    def __init__(
        self,
        *,
        candidate: Candidate,
        pool_size: int,
        cooldown_bypassed: bool,
    ) -> None:
        self.candidate = candidate
        self.pool_size = pool_size
        self.cooldown_bypassed = cooldown_bypassed


def menu_pool(data: RoomData) -> list[Candidate]:
    active_places = {p.id: p for p in data.places if p.is_active}
    return [
        Candidate(
            id=m.id,
            kind=Kind.menu,
            name=m.name,
            place_name=active_places[m.place_id].name,
        )
        for m in data.menus
        if m.is_active and m.place_id in active_places
    ]


def place_pool(data: RoomData) -> list[Candidate]:
    return [
        Candidate(id=p.id, kind=Kind.place, name=p.name, place_name=p.name)
        for p in data.places
        if p.is_active
    ]


def candidate_pool(data: RoomData) -> list[Candidate]:
    """Active menus, or active places when no menu is selectable."""
    return menu_pool(data) or place_pool(data)


def apply_cooldown(
    pool: list[Candidate],
    history: list[HistoryItem],
    *,
    window: int = COOLDOWN_WINDOW,
) -> tuple[list[Candidate], bool]:
    """Drop recently eaten names. Returns the pool and whether it was bypassed."""
    recent = {h.item_name.lower() for h in history[:window]}
    filtered = [c for c in pool if c.name.lower() not in recent]
    if filtered or not pool:
        return filtered, False
    return pool, True


def draw(
    data: RoomData,
    *,
    rng: random.Random | None = None,
    window: int = COOLDOWN_WINDOW,
) -> Draw:
    rng = random.Random() if rng is None else rng

    pool = candidate_pool(data)
    if not pool:
        raise EmptyPool("No active items to pick from.")

    eligible, bypassed = apply_cooldown(pool, data.history, window=window)
    if bypassed:
        logger.info("Cooldown bypassed: all %d active items were recent.", len(pool))

    return Draw(
        candidate=rng.choice(eligible),
        pool_size=len(eligible),
        cooldown_bypassed=bypassed,
    )
