import os

from dotenv import load_dotenv

# -----------------------------
# Load environment variables
# -----------------------------
load_dotenv()

DATA_DIR = os.getenv("ORDERS_DATA_DIR", "data")
DEFAULT_COMPANY = "default"
DEFAULT_DESK_COUNT = int(os.getenv("DEFAULT_DESK_COUNT", "10"))

# Request limits
MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", str(1024 * 1024)))
MAX_ITEM_QUANTITY = int(os.getenv("MAX_ITEM_QUANTITY", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "4000"))

# Built-in menu used until a company saves its own.
DEFAULT_MENU = {
    "coffee": {
        "name": "Coffee",
        "desc": "Corporate coffee selections",
        "items": [
            {"id": "espresso", "name": "Espresso", "value": "Espresso"},
            {"id": "americano", "name": "Americano", "value": "Americano"},
            {"id": "cappuccino", "name": "Cappuccino", "value": "Cappuccino"},
            {"id": "latte", "name": "Latte", "value": "Latte"},
            {"id": "mocha", "name": "Mocha", "value": "Mocha"},
        ],
    },
}
