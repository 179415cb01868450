from enum import Enum
from typing import Any, Self

from domain.days import DayKey, utcnow


HISTORY_LIMIT = 10


class Kind(Enum):
    menu = "menu"
    place = "place"


def _kind_from_dict(data: dict[str, Any]) -> Kind:
    # Documents written by the first version of the app use "type".
    return Kind(data.get("type") or data["kind"])


def _timestamp() -> str:
    return utcnow().isoformat()


class Place:
    def __init__(
        self,
        *,
        id: str,
        name: str,
        is_active: bool = True,
        created_at: str | None = None,
    ) -> None:
        self.id = id
        self.name = name
        self.is_active = is_active
        self.created_at = _timestamp() if created_at is None else created_at

    def __repr__(self) -> str:
        return f"<Place(id={self.id}, name={self.name})>"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=data["id"],
            name=data["name"],
            is_active=data.get("is_active", True),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": self.created_at,
        }


class Menu:
    def __init__(
        self,
        *,
        id: str,
        place_id: str,
        name: str,
        is_active: bool = True,
        created_at: str | None = None,
    ) -> None:
        self.id = id
        self.place_id = place_id
        self.name = name
        self.is_active = is_active
        self.created_at = _timestamp() if created_at is None else created_at

    def __repr__(self) -> str:
        return f"<Menu(id={self.id}, name={self.name}, place_id={self.place_id})>"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=data["id"],
            place_id=data["place_id"],
            name=data["name"],
            is_active=data.get("is_active", True),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "place_id": self.place_id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": self.created_at,
        }


class HistoryItem:
    def __init__(
        self,
        *,
        date: DayKey,
        item_name: str,
        kind: Kind,
        place_name: str | None = None,
    ) -> None:
        self.date = date
        self.item_name = item_name
        self.kind = kind
        self.place_name = place_name

    def __repr__(self) -> str:
        return f"<HistoryItem(date={self.date}, item_name={self.item_name})>"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            date=data["date"],
            item_name=data["item_name"],
            kind=_kind_from_dict(data),
            place_name=data.get("place_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "item_name": self.item_name,
            "type": self.kind.value,
            "place_name": self.place_name,
        }


class CurrentPick:
    def __init__(
        self,
        *,
        kind: Kind,
        item_id: str,
        item_name: str,
        place_name: str | None = None,
    ) -> None:
        self.kind = kind
        self.item_id = item_id
        self.item_name = item_name
        self.place_name = place_name

    def __repr__(self) -> str:
        return f"<CurrentPick(kind={self.kind.value}, item_name={self.item_name})>"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            kind=_kind_from_dict(data),
            item_id=data["item_id"],
            item_name=data["item_name"],
            place_name=data.get("place_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "place_name": self.place_name,
        }


class PickState:
    """Attempts and the revealed pick for one room on one day."""

    def __init__(
        self,
        *,
        day_key: DayKey,
        attempt_count: int = 0,
        current_pick: CurrentPick | None = None,
        timestamp: str | None = None,
    ) -> None:
        self.day_key = day_key
        self.attempt_count = attempt_count
        self.current_pick = current_pick
        self.timestamp = _timestamp() if timestamp is None else timestamp

    def __repr__(self) -> str:
        return (
            f"<PickState(day_key={self.day_key}, attempt_count={self.attempt_count})>"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        pick = data.get("current_pick")
        return cls(
            day_key=data["day_key"],
            attempt_count=data.get("attempt_count", 0),
            current_pick=None if pick is None else CurrentPick.from_dict(pick),
            timestamp=data.get("timestamp"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "day_key": self.day_key,
            "attempt_count": self.attempt_count,
            "current_pick": (
                None if self.current_pick is None else self.current_pick.to_dict()
            ),
            "timestamp": self.timestamp,
        }


class Rating:
    def __init__(
        self,
        *,
        date: DayKey,
        kind: Kind,
        item_id: str,
        score: int,
        created_at: str | None = None,
    ) -> None:
        self.date = date
        self.kind = kind
        self.item_id = item_id
        self.score = score
        self.created_at = _timestamp() if created_at is None else created_at

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            date=data["date"],
            kind=_kind_from_dict(data),
            item_id=data["item_id"],
            score=data["score"],
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "type": self.kind.value,
            "item_id": self.item_id,
            "score": self.score,
            "created_at": self.created_at,
        }


class RoomData:
    """Everything durable about a room, stored as a single document."""

    def __init__(
        self,
        *,
        room_name: str | None = None,
        places: list[Place] | None = None,
        menus: list[Menu] | None = None,
        history: list[HistoryItem] | None = None,
        ratings: list[Rating] | None = None,
    ) -> None:
        self.room_name = room_name
        self.places: list[Place] = [] if places is None else places
        self.menus: list[Menu] = [] if menus is None else menus
        self.history: list[HistoryItem] = [] if history is None else history
        self.ratings: list[Rating] = [] if ratings is None else ratings

    def __repr__(self) -> str:
        return (
            f"<RoomData(room_name={self.room_name}, places={len(self.places)}, "
            f"menus={len(self.menus)})>"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            room_name=data.get("room_name"),
            places=[Place.from_dict(p) for p in data.get("places") or []],
            menus=[Menu.from_dict(m) for m in data.get("menus") or []],
            history=[HistoryItem.from_dict(h) for h in data.get("history") or []],
            ratings=[Rating.from_dict(r) for r in data.get("ratings") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_name": self.room_name,
            "places": [p.to_dict() for p in self.places],
            "menus": [m.to_dict() for m in self.menus],
            "history": [h.to_dict() for h in self.history],
            "ratings": [r.to_dict() for r in self.ratings],
        }

    def place(self, id: str) -> Place | None:
        return next((p for p in self.places if p.id == id), None)

    def menu(self, id: str) -> Menu | None:
        return next((m for m in self.menus if m.id == id), None)

    def place_named(self, name: str) -> Place | None:
        name = name.lower()
        return next((p for p in self.places if p.name.lower() == name), None)

    def record_history(self, item: HistoryItem, *, limit: int = HISTORY_LIMIT) -> None:
        """Put `item` first, replacing any row for the same date."""
        rest = [h for h in self.history if h.date != item.date]
        self.history = [item, *rest][:limit]
