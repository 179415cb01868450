from pathlib import Path
from typing import Any

import pytest
from databases import Database

from conftest import room_data
from domain.errors import StoreUnavailable
from domain.models import PickState
from domain.repository import (
    DatabaseRoomStore,
    MemoryRoomStore,
    RoomRepository,
    data_key,
    state_key,
)


class BrokenStore:
    async def read(self, keys: list[str]) -> dict[str, Any]:
        raise OSError("connection refused")

    async def write(self, key: str, value: Any) -> None:
        raise OSError("connection refused")


def test_keys() -> None:
    assert data_key("abc123") == "data:abc123"
    assert state_key("abc123", "2026-10-18") == "state:abc123:2026-10-18"
    with pytest.raises(ValueError):
        data_key("")
    with pytest.raises(ValueError):
        state_key("", "2026-10-18")


@pytest.mark.asyncio
async def test_memory_store_returns_copies() -> None:
    store = MemoryRoomStore()
    await store.write("k", {"places": []})
    got = await store.read(["k", "missing"])
    got["k"]["places"].append("x")
    assert await store.read(["k"]) == {"k": {"places": []}}


@pytest.mark.asyncio
async def test_repository_unknown_room() -> None:
    data, state = await RoomRepository(MemoryRoomStore()).load("new", "2026-10-18")
    assert data.places == data.menus == data.history == []
    assert data.room_name is None
    assert state is None


@pytest.mark.asyncio
async def test_repository_state_is_per_day() -> None:
    repo = RoomRepository(MemoryRoomStore())
    await repo.save_state("team", PickState(day_key="2026-10-18", attempt_count=2))
    _, today = await repo.load("team", "2026-10-18")
    _, tomorrow = await repo.load("team", "2026-10-19")
    assert today is not None and today.attempt_count == 2
    assert tomorrow is None


@pytest.mark.asyncio
async def test_repository_wraps_store_errors() -> None:
    repo = RoomRepository(BrokenStore())
    with pytest.raises(StoreUnavailable) as exc_info:
        await repo.load("team", "2026-10-18")
    assert isinstance(exc_info.value.__cause__, OSError)
    with pytest.raises(StoreUnavailable):
        await repo.save_data("team", room_data())


@pytest.mark.asyncio
async def test_database_store(tmp_path: Path) -> None:
    async with Database(f"sqlite+aiosqlite:///{tmp_path / 'rooms.db'}") as db:
        store = DatabaseRoomStore(db)
        await store.create()
        await store.create()

        assert await store.read([]) == {}
        assert await store.read(["data:team"]) == {}

        await store.write("data:team", {"room_name": "Team"})
        await store.write("data:team", {"room_name": "Lunch Club"})
        await store.write("state:team:2026-10-18", {"attempt_count": 1})

        got = await store.read(["data:team", "state:team:2026-10-18", "data:other"])
        assert got == {
            "data:team": {"room_name": "Lunch Club"},
            "state:team:2026-10-18": {"attempt_count": 1},
        }


@pytest.mark.asyncio
async def test_database_repository(tmp_path: Path) -> None:
    async with Database(f"sqlite+aiosqlite:///{tmp_path / 'rooms.db'}") as db:
        store = DatabaseRoomStore(db)
        await store.create()
        repo = RoomRepository(store)

        await repo.save_data("team", room_data(("Kimbap Town", ["Tteokbokki"])))
        data, state = await repo.load("team", "2026-10-18")
        assert [p.name for p in data.places] == ["Kimbap Town"]
        assert [m.name for m in data.menus] == ["Tteokbokki"]
        assert state is None
