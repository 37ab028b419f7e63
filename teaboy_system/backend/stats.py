import pandas as pd

from teaboy_system.backend.normalizer import COMPLETED, IN_PROGRESS, PENDING

ORDER_COLUMNS = ["id", "desk", "status", "timestamp"]


def orders_frame(orders) -> pd.DataFrame:
    records = []
    for order in orders:
        if not isinstance(order, dict):
            continue
        records.append({
            "id": str(order.get("id", "")),
            "desk": str(order.get("desk") or "unknown"),
            "status": order.get("status"),
            "timestamp": order.get("timestamp"),
        })
    return pd.DataFrame(records, columns=ORDER_COLUMNS)


def items_frame(orders) -> pd.DataFrame:
    rows = []
    for order in orders:
        if not isinstance(order, dict) or not isinstance(order.get("items"), list):
            continue
        for item in order["items"]:
            rows.append({"item": str(item), "qty": 1})
    return pd.DataFrame(rows, columns=["item", "qty"])


def summarize_orders(orders, today) -> dict:
    """Counters shown on the staff dashboard for one company's orders."""
    df = orders_frame(orders)
    if df.empty:
        return {
            "total": 0,
            "pending": 0,
            "inProgress": 0,
            "completed": 0,
            "completedToday": 0,
            "byDesk": {},
            "topItems": {},
        }

    stamps = pd.to_datetime(df["timestamp"], errors="coerce", utc=True, format="ISO8601")
    completed = df["status"] == COMPLETED
    completed_today = completed & (stamps.dt.date == today)

    by_desk = df.groupby("desk").size().sort_index()

    items = items_frame(orders)
    top_items = (
        items.groupby("item")["qty"].sum().sort_values(ascending=False, kind="stable")
    )

    return {
        "total": int(len(df)),
        "pending": int((df["status"] == PENDING).sum()),
        "inProgress": int((df["status"] == IN_PROGRESS).sum()),
        "completed": int(completed.sum()),
        "completedToday": int(completed_today.sum()),
        "byDesk": {desk: int(count) for desk, count in by_desk.items()},
        "topItems": {item: int(qty) for item, qty in top_items.items()},
    }
