from datetime import date

from teaboy_system.backend.stats import summarize_orders


def test_summary_of_empty_collection() -> None:
    summary = summarize_orders([], date(2026, 10, 18))
    assert summary["total"] == 0
    assert summary["byDesk"] == {}
    assert summary["topItems"] == {}


def test_summary_counts() -> None:
    orders = [
        {"id": "1", "desk": "3", "items": ["Tea", "Tea"], "status": "pending", "timestamp": "2026-10-18T08:00:00.000Z"},
        {"id": "2", "desk": "3", "items": ["Coffee"], "status": "completed", "timestamp": "2026-10-18T09:30:00.000Z"},
        {"id": "3", "desk": "5", "items": ["Tea"], "status": "completed", "timestamp": "2026-10-17T23:59:00.000Z"},
        {"id": "4", "items": "broken", "status": "in-progress", "timestamp": "yesterday"},
        "garbage",
    ]

    summary = summarize_orders(orders, date(2026, 10, 18))

    assert summary["total"] == 4
    assert summary["pending"] == 1
    assert summary["inProgress"] == 1
    assert summary["completed"] == 2
    assert summary["completedToday"] == 1
    assert summary["byDesk"] == {"3": 2, "5": 1, "unknown": 1}
    assert list(summary["topItems"].items()) == [("Tea", 3), ("Coffee", 1)]
