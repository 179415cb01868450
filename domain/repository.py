import asyncio
import json
import logging
from typing import Any, Protocol

from databases import Database

from domain.days import DayKey
from domain.errors import StoreUnavailable
from domain.models import PickState, RoomData


logger = logging.getLogger(__name__)


type RoomId = str


CREATE_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (key VARCHAR(512) PRIMARY KEY, value TEXT NOT NULL)
"""


# SQLite and PostgreSQL upsert syntax.
UPSERT_VALUE = """
INSERT INTO kv_store(key, value) VALUES (:key, :value)
ON CONFLICT(key) DO UPDATE SET value = excluded.value
"""


SELECT_VALUES = "SELECT key, value FROM kv_store WHERE key IN ({params})"


def data_key(room_id: RoomId) -> str:
    if not room_id:
        raise ValueError("Room id must not be empty.")
    return f"data:{room_id}"


def state_key(room_id: RoomId, day: DayKey) -> str:
    if not room_id:
        raise ValueError("Room id must not be empty.")
    return f"state:{room_id}:{day}"


class RoomStore(Protocol):
    async def read(self, keys: list[str]) -> dict[str, Any]:
        ...

    async def write(self, key: str, value: Any) -> None:
        ...


class MemoryRoomStore:
    """Process-local store. Suspends on every call like a remote one would."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    async def read(self, keys: list[str]) -> dict[str, Any]:
        await asyncio.sleep(0)
        return {k: json.loads(self._values[k]) for k in keys if k in self._values}

    async def write(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        await asyncio.sleep(0)
        self._values[key] = encoded


class DatabaseRoomStore:
    """Key-value rows in a single SQL table, JSON encoded."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def create(self) -> None:
        await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
            query=CREATE_KV_TABLE
        )

    async def read(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        values = {f"k{i}": k for i, k in enumerate(keys)}
        query = SELECT_VALUES.format(params=", ".join(f":{p}" for p in values))
        rows = await self.db.fetch_all(  # pyright: ignore[reportUnknownMemberType]
            query, values=values
        )
        return {r["key"]: json.loads(r["value"]) for r in rows}

    async def write(self, key: str, value: Any) -> None:
        await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
            UPSERT_VALUE, values={"key": key, "value": json.dumps(value)}
        )


class RoomRepository:
    """Rooms and their daily pick state on top of a `RoomStore`."""

    def __init__(self, store: RoomStore) -> None:
        self.store = store

    async def _read(self, keys: list[str]) -> dict[str, Any]:
        try:
            return await self.store.read(keys)
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.warning("Room store read failed for %s: %r", keys, e)
            raise StoreUnavailable(f"Could not read {', '.join(keys)}") from e

    async def _write(self, key: str, value: Any) -> None:
        try:
            await self.store.write(key, value)
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.warning("Room store write failed for %s: %r", key, e)
            raise StoreUnavailable(f"Could not write {key}") from e

    async def load(
        self, room_id: RoomId, day: DayKey
    ) -> tuple[RoomData, PickState | None]:
        dkey, skey = data_key(room_id), state_key(room_id, day)
        rows = await self._read([dkey, skey])
        data = RoomData.from_dict(rows[dkey]) if dkey in rows else RoomData()
        state = PickState.from_dict(rows[skey]) if skey in rows else None
        return data, state

    async def save_data(self, room_id: RoomId, data: RoomData) -> str:
        key = data_key(room_id)
        await self._write(key, data.to_dict())
        return key

    async def save_state(self, room_id: RoomId, state: PickState) -> str:
        key = state_key(room_id, state.day_key)
        await self._write(key, state.to_dict())
        return key
