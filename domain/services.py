"""Operations on a single room.

Every operation is one read of the room's documents followed by one write
phase. There is no locking: two people editing the same room at the same time
race on the whole catalog document and the last write wins.
"""

import logging
import random
import re
import secrets
import string
import uuid
from datetime import datetime
from typing import Any, Callable, Self
from zoneinfo import ZoneInfo

from domain.days import ASIA_SEOUL, DayKey, day_key, utcnow
from domain.errors import (
    AlreadyExists,
    MenuNotFound,
    NothingToRate,
    PlaceNotFound,
    RetryLimitReached,
)
from domain.feed import ChangeFeed
from domain.models import (
    CurrentPick,
    HistoryItem,
    Kind,
    Menu,
    Place,
    PickState,
    Rating,
    RoomData,
)
from domain.ratings import average_rating, check_score
from domain.repository import RoomId, RoomRepository
from domain.selection import draw


logger = logging.getLogger(__name__)


MAX_ATTEMPTS = 2
ROOM_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_room_id(length: int = 6) -> RoomId:
    return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(length))


def clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("Name must not be empty.")
    return name


def split_menu_names(text: str) -> list[str]:
    """'Burger, Fries\\nCoke' -> ['Burger', 'Fries', 'Coke']"""
    return [n.strip() for n in re.split(r"[,\n]+", text) if n.strip()]


class Selection:
    def __init__(
        self,
        *,
        kind: Kind,
        item_id: str,
        item_name: str,
        place_name: str | None,
        attempt_count: int,
        attempts_left: int,
        cooldown_bypassed: bool,
    ) -> None:
        self.kind = kind
        self.item_id = item_id
        self.item_name = item_name
        self.place_name = place_name
        self.attempt_count = attempt_count
        self.attempts_left = attempts_left
        self.cooldown_bypassed = cooldown_bypassed

    def __repr__(self) -> str:
        return f"<Selection(kind={self.kind.value}, item_name={self.item_name})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "place_name": self.place_name,
            "attempt_count": self.attempt_count,
            "attempts_left": self.attempts_left,
            "cooldown_bypassed": self.cooldown_bypassed,
        }


class LunchRoom:
    """What one caller knows about one room, and everything they can do to it.

    `data` and `pick_state` are the documents as last read by `load` or
    written by an operation. They are not shared between instances.
    """

    def __init__(
        self,
        room_id: RoomId,
        *,
        repository: RoomRepository,
        feed: ChangeFeed | None = None,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
        tz: ZoneInfo = ASIA_SEOUL,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        if not room_id:
            raise ValueError("Room id must not be empty.")
        self.room_id = room_id
        self.repository = repository
        self.feed = feed
        self.clock = clock
        self.rng = random.Random() if rng is None else rng
        self.tz = tz
        self.max_attempts = max_attempts
        self.data = RoomData()
        self.pick_state: PickState | None = None

    def __repr__(self) -> str:
        return f"<LunchRoom(room_id={self.room_id})>"

    def today(self) -> DayKey:
        return day_key(self.clock(), self.tz)

    @property
    def room_name(self) -> str | None:
        return self.data.room_name

    @property
    def places(self) -> list[Place]:
        return self.data.places

    @property
    def menus(self) -> list[Menu]:
        return self.data.menus

    @property
    def history(self) -> list[HistoryItem]:
        return self.data.history

    @property
    def current_pick(self) -> CurrentPick | None:
        if self.pick_state is None or self.pick_state.day_key != self.today():
            return None
        return self.pick_state.current_pick

    @property
    def attempt_count(self) -> int:
        if self.pick_state is None or self.pick_state.day_key != self.today():
            return 0
        return self.pick_state.attempt_count

    @property
    def attempts_left(self) -> int:
        return max(0, self.max_attempts - self.attempt_count)

    def to_dict(self) -> dict[str, Any]:
        pick = self.current_pick
        return {
            "room_id": self.room_id,
            "day_key": self.today(),
            **self.data.to_dict(),
            "current_pick": None if pick is None else pick.to_dict(),
            "attempt_count": self.attempt_count,
            "attempts_left": self.attempts_left,
        }

    async def _read(self) -> tuple[datetime, DayKey, RoomData, PickState | None]:
        now = self.clock()
        day = day_key(now, self.tz)
        data, state = await self.repository.load(self.room_id, day)
        return now, day, data, state

    def _publish(self, key: str) -> None:
        if self.feed is not None:
            self.feed.publish(self.room_id, key)

    async def _save_data(self, data: RoomData) -> None:
        key = await self.repository.save_data(self.room_id, data)
        self.data = data
        self._publish(key)

    async def _save_state(self, state: PickState) -> None:
        key = await self.repository.save_state(self.room_id, state)
        self.pick_state = state
        self._publish(key)

    async def _mutate[T](self, change: Callable[[datetime, RoomData], T]) -> T:
        now, _, data, state = await self._read()
        result = change(now, data)
        await self._save_data(data)
        self.pick_state = state
        return result

    async def load(self) -> Self:
        _, _, self.data, self.pick_state = await self._read()
        return self

    # Catalog

    async def set_room_name(self, name: str) -> None:
        name = clean_name(name)

        def change(now: datetime, data: RoomData) -> None:
            data.room_name = name

        await self._mutate(change)

    async def add_place(self, name: str) -> str:
        return await self.add_place_with_menus(name, [])

    async def add_place_with_menus(self, name: str, menus: list[str] | str) -> str:
        """Add a place and its menu items in a single write."""
        name = clean_name(name)
        menu_names = split_menu_names(menus) if isinstance(menus, str) else menus
        menu_names = [clean_name(n) for n in menu_names]

        def change(now: datetime, data: RoomData) -> str:
            if data.place_named(name) is not None:
                raise AlreadyExists(f"{name} is already in the list.")
            place = Place(
                id=uuid.uuid4().hex, name=name, created_at=now.isoformat()
            )
            data.places.insert(0, place)
            data.menus.extend(
                Menu(
                    id=uuid.uuid4().hex,
                    place_id=place.id,
                    name=n,
                    created_at=now.isoformat(),
                )
                for n in menu_names
            )
            return place.id

        place_id = await self._mutate(change)
        logger.info("Added place %s to room %s", place_id, self.room_id)
        return place_id

    async def add_menu(self, place_id: str, name: str) -> str:
        name = clean_name(name)

        def change(now: datetime, data: RoomData) -> str:
            if data.place(place_id) is None:
                raise PlaceNotFound(place_id)
            menu = Menu(
                id=uuid.uuid4().hex,
                place_id=place_id,
                name=name,
                created_at=now.isoformat(),
            )
            data.menus.append(menu)
            return menu.id

        return await self._mutate(change)

    async def toggle_active(self, kind: Kind | str, id: str) -> bool:
        """Flip `is_active` and return the new value."""
        kind = Kind(kind)

        def change(now: datetime, data: RoomData) -> bool:
            entity = data.place(id) if kind == Kind.place else data.menu(id)
            if entity is None:
                raise PlaceNotFound(id) if kind == Kind.place else MenuNotFound(id)
            entity.is_active = not entity.is_active
            return entity.is_active

        return await self._mutate(change)

    async def toggle_place(self, id: str) -> bool:
        return await self.toggle_active(Kind.place, id)

    async def toggle_menu(self, id: str) -> bool:
        return await self.toggle_active(Kind.menu, id)

    async def rename_place(self, id: str, name: str) -> None:
        name = clean_name(name)

        def change(now: datetime, data: RoomData) -> None:
            place = data.place(id)
            if place is None:
                raise PlaceNotFound(id)
            other = data.place_named(name)
            if other is not None and other.id != id:
                raise AlreadyExists(f"{name} is already in the list.")
            place.name = name

        await self._mutate(change)

    async def rename_menu(self, id: str, name: str) -> None:
        name = clean_name(name)

        def change(now: datetime, data: RoomData) -> None:
            menu = data.menu(id)
            if menu is None:
                raise MenuNotFound(id)
            menu.name = name

        await self._mutate(change)

    async def delete_place(self, id: str) -> None:
        """Remove a place and every menu item under it."""

        def change(now: datetime, data: RoomData) -> None:
            if data.place(id) is None:
                raise PlaceNotFound(id)
            data.places = [p for p in data.places if p.id != id]
            data.menus = [m for m in data.menus if m.place_id != id]

        await self._mutate(change)
        logger.info("Deleted place %s from room %s", id, self.room_id)

    async def delete_menu(self, id: str) -> None:
        def change(now: datetime, data: RoomData) -> None:
            if data.menu(id) is None:
                raise MenuNotFound(id)
            data.menus = [m for m in data.menus if m.id != id]

        await self._mutate(change)

    # Picking

    async def pick_lunch(self) -> Selection:
        now, day, data, state = await self._read()
        attempts = 0 if state is None else state.attempt_count
        if attempts >= self.max_attempts:
            logger.info("Room %s is out of attempts for %s", self.room_id, day)
            raise RetryLimitReached(f"Retry limit reached for {day}.")

        result = draw(data, rng=self.rng)
        candidate = result.candidate
        new_state = PickState(
            day_key=day,
            attempt_count=attempts + 1,
            current_pick=CurrentPick(
                kind=candidate.kind,
                item_id=candidate.id,
                item_name=candidate.name,
                place_name=candidate.place_name,
            ),
            timestamp=now.isoformat(),
        )
        data.record_history(
            HistoryItem(
                date=day,
                item_name=candidate.name,
                kind=candidate.kind,
                place_name=candidate.place_name,
            )
        )

        # History is written before the pick state, the reverse of the order the
        # first version of the app used. A failed state write then leaves the
        # attempt unspent and the next pick replaces today's history row.
        await self._save_data(data)
        await self._save_state(new_state)

        logger.info(
            "Room %s picked %s (attempt %d/%d)",
            self.room_id,
            candidate.name,
            new_state.attempt_count,
            self.max_attempts,
        )
        return Selection(
            kind=candidate.kind,
            item_id=candidate.id,
            item_name=candidate.name,
            place_name=candidate.place_name,
            attempt_count=new_state.attempt_count,
            attempts_left=max(0, self.max_attempts - new_state.attempt_count),
            cooldown_bypassed=result.cooldown_bypassed,
        )

    # Ratings

    async def submit_rating(self, score: int) -> None:
        score = check_score(score)

        now, day, data, state = await self._read()
        if state is None or state.current_pick is None:
            raise NothingToRate(f"Nothing has been picked for {day}.")
        pick = state.current_pick
        data.ratings.append(
            Rating(
                date=day,
                kind=pick.kind,
                item_id=pick.item_id,
                score=score,
                created_at=now.isoformat(),
            )
        )
        await self._save_data(data)
        self.pick_state = state

    def average_rating(self, kind: Kind | str, item_id: str) -> float | None:
        return average_rating(self.data.ratings, Kind(kind), item_id)
