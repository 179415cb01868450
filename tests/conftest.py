import random
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

import pytest

from domain.feed import ChangeFeed
from domain.models import Menu, Place, RoomData
from domain.repository import MemoryRoomStore, RoomRepository
from domain.services import LunchRoom


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


def room_data(*places: tuple[str, list[str]]) -> RoomData:
    """room_data(("Kimbap Town", ["Tteokbokki"]), ("Pizza Hut", []))"""
    data = RoomData()
    for i, (name, menus) in enumerate(places):
        place = Place(id=f"p{i}", name=name)
        data.places.append(place)
        data.menus.extend(
            Menu(id=f"p{i}m{j}", place_id=place.id, name=m) for j, m in enumerate(menus)
        )
    return data


@pytest.fixture
def clock() -> Clock:
    # Noon in Seoul.
    return Clock(datetime(2026, 10, 18, 3, 0, tzinfo=UTC))


@pytest.fixture
def store() -> MemoryRoomStore:
    return MemoryRoomStore()


@pytest.fixture
def repository(store: MemoryRoomStore) -> RoomRepository:
    return RoomRepository(store)


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def make_room(
    repository: RoomRepository, clock: Clock, feed: ChangeFeed
) -> Callable[..., LunchRoom]:
    def make(room_id: str = "team", **kwargs: Any) -> LunchRoom:
        kwargs.setdefault("repository", repository)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("feed", feed)
        kwargs.setdefault("rng", random.Random(7))
        return LunchRoom(room_id, **kwargs)

    return make


@pytest.fixture
def room(make_room: Callable[..., LunchRoom]) -> LunchRoom:
    return make_room()
