import re
from datetime import datetime

import pytest

from teaboy_system.backend import normalizer
from teaboy_system.backend.errors import Conflict, ValidationError


def test_items_derived_from_items_detailed() -> None:
    order = normalizer.normalize_order(
        {
            "desk": 3,
            "itemsDetailed": [
                {"name": "Tea", "quantity": 2},
                {"name": "Coffee", "quantity": 0},
            ],
        },
        [],
    )
    assert order["items"] == ["Tea", "Tea"]
    assert order["itemsDetailed"][0]["name"] == "Tea"


def test_items_detailed_name_resolution_and_quantities() -> None:
    items = normalizer.expand_items_detailed(
        [
            {"value": "Latte", "quantity": "3"},
            {"id": "mocha", "quantity": 1.9},
            {"name": "Water", "quantity": -2},
            {"name": "Juice", "quantity": "lots"},
            {"name": "Soda", "quantity": True},
            {"quantity": 4},
            "Espresso",
        ]
    )
    assert items == ["Latte", "Latte", "Latte", "mocha"]


def test_explicit_items_win_over_items_detailed() -> None:
    order = normalizer.normalize_order(
        {"desk": "1", "items": ["Tea"], "itemsDetailed": [{"name": "Coffee", "quantity": 5}]},
        [],
    )
    assert order["items"] == ["Tea"]


def test_desk_coerced_to_string_and_items_defaulted() -> None:
    order = normalizer.normalize_order({"desk": 12, "items": "Tea"}, [])
    assert order["desk"] == "12"
    assert order["items"] == []


def test_non_string_items_are_coerced() -> None:
    order = normalizer.normalize_order({"desk": "1", "items": ["Tea", 7, {"name": "Chai"}, None]}, [])
    assert order["items"] == ["Tea", "7", "Chai"]


def test_generated_id_shape_and_uniqueness(monkeypatch) -> None:
    monkeypatch.setattr(normalizer.time, "time", lambda: 1700000000.0)
    draws = iter([7, 7, 8])
    monkeypatch.setattr(normalizer.random, "randint", lambda a, b: next(draws))

    order = normalizer.normalize_order({"desk": "1"}, [{"id": "ORD-1700000000000-7"}])
    assert order["id"] == "ORD-1700000000000-8"


def test_generated_id_pattern() -> None:
    order = normalizer.normalize_order({"desk": "1"}, [])
    assert re.fullmatch(r"ORD-\d+-\d{1,4}", order["id"])


def test_supplied_id_is_stringified() -> None:
    order = normalizer.normalize_order({"id": 1001, "desk": "1"}, [])
    assert order["id"] == "1001"


def test_missing_desk_is_rejected() -> None:
    with pytest.raises(ValidationError):
        normalizer.normalize_order({"items": ["Tea"]}, [])
    with pytest.raises(ValidationError):
        normalizer.normalize_order({"desk": None}, [])


def test_non_object_payload_is_rejected() -> None:
    with pytest.raises(ValidationError):
        normalizer.normalize_order(["Tea"], [])


def test_empty_items_are_accepted() -> None:
    order = normalizer.normalize_order({"desk": "5", "items": []}, [])
    assert order["items"] == []


def test_duplicate_id_conflicts() -> None:
    with pytest.raises(Conflict):
        normalizer.normalize_order({"id": "A1", "desk": "1"}, [{"id": "A1"}])


def test_defaults_for_status_and_timestamp() -> None:
    order = normalizer.normalize_order({"desk": "1"}, [])
    assert order["status"] == "pending"
    assert order["timestamp"].endswith("Z")
    datetime.fromisoformat(order["timestamp"])


def test_supplied_timestamp_and_status_are_kept() -> None:
    order = normalizer.normalize_order(
        {"desk": "1", "status": "in-progress", "timestamp": "2026-01-02T03:04:05.000Z"}, []
    )
    assert order["timestamp"] == "2026-01-02T03:04:05.000Z"
    assert order["status"] == "in-progress"
    assert "startedAt" in order


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(ValidationError):
        normalizer.normalize_order({"desk": "1", "status": "lost"}, [])


def test_service_area_name_moves_to_teaboy_name() -> None:
    order = normalizer.normalize_order({"desk": "1", "serviceAreaName": "Ali"}, [])
    assert order["teaboyName"] == "Ali"
    assert "serviceAreaName" not in order

    kept = normalizer.normalize_order(
        {"desk": "1", "teaboyName": "Omar", "serviceAreaName": "Ali"}, []
    )
    assert kept["teaboyName"] == "Omar"
    assert "serviceAreaName" not in kept


def test_unknown_fields_are_preserved() -> None:
    order = normalizer.normalize_order({"desk": "1", "notes": "no sugar"}, [])
    assert order["notes"] == "no sugar"


def test_merge_update_pins_id_and_coerces_desk() -> None:
    existing = {"id": "A1", "desk": "1", "items": ["Tea"], "status": "pending", "timestamp": "t"}
    updated = normalizer.merge_update(existing, {"id": "B2", "desk": 9, "notes": "hot"})

    assert updated["id"] == "A1"
    assert updated["desk"] == "9"
    assert updated["notes"] == "hot"
    assert updated["items"] == ["Tea"]
    assert existing["desk"] == "1"


def test_merge_update_completion_stamps_once() -> None:
    existing = {"id": "A1", "desk": "1", "items": [], "status": "in-progress", "startedAt": "s"}
    completed = normalizer.merge_update(existing, {"status": "completed"})
    assert completed["startedAt"] == "s"
    assert completed["completedAt"]

    again = normalizer.merge_update(completed, {"status": "completed"})
    assert again["completedAt"] == completed["completedAt"]


def test_merge_update_keeps_supplied_completed_at() -> None:
    existing = {"id": "A1", "desk": "1", "items": [], "status": "pending"}
    updated = normalizer.merge_update(
        existing, {"status": "completed", "completedAt": "2026-01-01T00:00:00.000Z"}
    )
    assert updated["completedAt"] == "2026-01-01T00:00:00.000Z"


def test_bulk_normalizes_every_entry() -> None:
    orders = normalizer.normalize_bulk(
        [
            {"id": 5, "desk": 2, "items": ["Tea"]},
            {"desk": "3", "itemsDetailed": [{"name": "Coffee", "quantity": 2}]},
            {},
            None,
        ]
    )
    assert [o["id"] for o in orders][0] == "5"
    assert orders[0]["desk"] == "2"
    assert orders[1]["items"] == ["Coffee", "Coffee"]
    assert len({o["id"] for o in orders}) == 4
    assert all(o["status"] == "pending" for o in orders)


def test_bulk_rejects_non_list() -> None:
    with pytest.raises(ValidationError):
        normalizer.normalize_bulk({"id": "x"})


@pytest.mark.parametrize("stars", [0, 6, 2.5, "five", True, None])
def test_rating_rejects_out_of_range_stars(stars) -> None:
    with pytest.raises(ValidationError):
        normalizer.make_rating(stars)


def test_rating_shape() -> None:
    rating = normalizer.make_rating("4", "Nice and hot")
    assert rating["stars"] == 4
    assert rating["review"] == "Nice and hot"
    assert rating["timestamp"]
    assert normalizer.make_rating(5)["review"] == ""


@pytest.mark.parametrize("changes", [{"status": None}, {"desk": None}, {"status": ""}])
def test_merge_update_rejects_null_status_or_desk(changes) -> None:
    existing = {"id": "A", "desk": "1", "items": [], "status": "pending", "timestamp": "t"}
    with pytest.raises(ValidationError):
        normalizer.merge_update(existing, changes)
    assert existing["status"] == "pending"
    assert existing["desk"] == "1"


def test_quantity_uses_leading_integer() -> None:
    items = normalizer.expand_items_detailed(
        [
            {"name": "Tea", "quantity": "1e3"},
            {"name": "Chai", "quantity": " 2 cups"},
            {"name": "Latte", "quantity": "-3"},
        ]
    )
    assert items == ["Tea", "Chai", "Chai"]


def test_quantity_is_capped(monkeypatch) -> None:
    monkeypatch.setattr(normalizer.config, "MAX_ITEM_QUANTITY", 5)
    items = normalizer.expand_items_detailed(
        [{"name": "Tea", "quantity": 1e8}, {"name": "Coffee", "quantity": "100000000"}]
    )
    assert items == ["Tea"] * 5 + ["Coffee"] * 5
