import os

# Local durable store (one serialized item collection per key)
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite://./gold_inventory.sqlite3")
ITEMS_STORAGE_KEY: str = os.getenv("ITEMS_STORAGE_KEY", "annvi_items_v1")

# Remote row store (PostgREST / Supabase style) and photo bucket
REMOTE_URL: str = os.getenv("REMOTE_URL", "http://localhost:54321")
REMOTE_API_KEY: str = os.getenv("REMOTE_API_KEY", "")
REMOTE_TIMEOUT_SECONDS: float = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "30"))
REMOTE_PULL_LIMIT: int = int(os.getenv("REMOTE_PULL_LIMIT", "500"))
ORDERS_PULL_LIMIT: int = int(os.getenv("ORDERS_PULL_LIMIT", "200"))
STORAGE_BUCKET: str = os.getenv("STORAGE_BUCKET", "item-images")

ITEM_ID_PREFIX: str = os.getenv("ITEM_ID_PREFIX", "AG")

# Shared PIN gate
ACCESS_PIN: str = os.getenv("ACCESS_PIN", "2828")
SECRET_KEY: str = os.getenv(
    "SECRET_KEY", "your-secret-key-for-jwt-!ChangeMe!"
)  # TODO: Use a strong, environment-based secret
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Audit log defaults when the caller does not say who/where
DEFAULT_ACTOR: str = os.getenv("DEFAULT_ACTOR", "Factory")
DEFAULT_PLACE: str = os.getenv("DEFAULT_PLACE", "Local")

WHATSAPP_NUMBER: str = os.getenv("WHATSAPP_NUMBER", "")
