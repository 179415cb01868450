import random

import pytest

from conftest import room_data
from domain.errors import EmptyPool
from domain.models import HistoryItem, Kind
from domain.selection import apply_cooldown, candidate_pool, draw


def history(*names: str) -> list[HistoryItem]:
    return [
        HistoryItem(date=f"2026-10-{17 - i:02d}", item_name=n, kind=Kind.menu)
        for i, n in enumerate(names)
    ]


def test_menus_preferred_over_places() -> None:
    data = room_data(("Kimbap Town", ["Tteokbokki", "Ramyeon"]), ("Pizza Hut", []))
    pool = candidate_pool(data)
    assert {c.name for c in pool} == {"Tteokbokki", "Ramyeon"}
    assert all(c.kind == Kind.menu for c in pool)
    assert all(c.place_name == "Kimbap Town" for c in pool)


def test_places_used_without_menus() -> None:
    data = room_data(("Kimbap Town", []), ("Pizza Hut", []))
    pool = candidate_pool(data)
    assert {c.name for c in pool} == {"Kimbap Town", "Pizza Hut"}
    assert all(c.kind == Kind.place for c in pool)


def test_inactive_place_hides_its_menus() -> None:
    data = room_data(("Kimbap Town", ["Tteokbokki"]), ("Pizza Hut", []))
    data.places[0].is_active = False
    pool = candidate_pool(data)
    assert [(c.kind, c.name) for c in pool] == [(Kind.place, "Pizza Hut")]


def test_inactive_menu_skipped() -> None:
    data = room_data(("Kimbap Town", ["Tteokbokki", "Ramyeon"]))
    data.menus[0].is_active = False
    assert [c.name for c in candidate_pool(data)] == ["Ramyeon"]


@pytest.mark.parametrize(
    "places",
    (
        (),
        (("Kimbap Town", ["Tteokbokki"]),),
    ),
)
def test_empty_pool(places: tuple[tuple[str, list[str]], ...]) -> None:
    data = room_data(*places)
    for p in data.places:
        p.is_active = False
    with pytest.raises(EmptyPool):
        draw(data)


def test_cooldown_is_case_insensitive() -> None:
    data = room_data(("Noodle Bar", ["Ramen", "Udon"]))
    data.history = history("RAMEN")
    for seed in range(20):
        got = draw(data, rng=random.Random(seed))
        assert got.candidate.name == "Udon"
        assert not got.cooldown_bypassed


def test_cooldown_only_looks_back_three() -> None:
    pool = candidate_pool(room_data(("Food Court", ["Ramen", "Pizza", "Sushi", "Tacos"])))
    eligible, bypassed = apply_cooldown(pool, history("Ramen", "Pizza", "Sushi", "Tacos"))
    assert [c.name for c in eligible] == ["Tacos"]
    assert not bypassed


def test_cooldown_bypassed_when_everything_is_recent(
    caplog: pytest.LogCaptureFixture,
) -> None:
    data = room_data(("Food Court", ["Ramen", "Pizza", "Sushi"]))
    data.history = history("Ramen", "Pizza", "Sushi")
    with caplog.at_level("INFO"):
        got = draw(data, rng=random.Random(1))
    assert got.cooldown_bypassed
    assert got.pool_size == 3
    assert got.candidate.name in {"Ramen", "Pizza", "Sushi"}
    assert "Cooldown bypassed" in caplog.text


def test_draw_uses_rng() -> None:
    data = room_data(("Food Court", ["Ramen", "Pizza", "Sushi", "Tacos", "Bibimbap"]))
    picks = [draw(data, rng=random.Random(42)).candidate.name for _ in range(5)]
    assert len(set(picks)) == 1
    seen = {draw(data, rng=random.Random(s)).candidate.name for s in range(200)}
    assert seen == {"Ramen", "Pizza", "Sushi", "Tacos", "Bibimbap"}
