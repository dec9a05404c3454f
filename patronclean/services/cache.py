"""Redis-backed table cache for the HTTP API."""

import io
import json

import pandas as pd
import redis

from patronclean.config import settings
from patronclean.exceptions import TableNotFound
from patronclean.services.table import DataFrameTable

_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


def get_redis():
    return _client


def _key(table_id: str) -> str:
    return f"table:{table_id}"


def cache_table(table_id: str, table: DataFrameTable, client=None) -> None:
    """Serialise the table's DataFrame to JSON and store it without expiry."""
    client = client or _client
    payload = {
        "name": table.name,
        "frame": table.df.to_json(orient="split", date_format="iso"),
    }
    client.set(_key(table_id), json.dumps(payload))


def get_cached_table(table_id: str, client=None) -> DataFrameTable:
    """Return the cached table or raise ``TableNotFound``."""
    client = client or _client
    raw = client.get(_key(table_id))
    if raw is None:
        raise TableNotFound(f"Table {table_id} not found")
    payload = json.loads(raw)
    # dtype=False keeps "0987..." strings as strings
    df = pd.read_json(io.StringIO(payload["frame"]), orient="split", dtype=False, convert_dates=False, convert_axes=False)
    return DataFrameTable(df, name=payload["name"])


def delete_cached_table(table_id: str, client=None) -> None:
    client = client or _client
    client.delete(_key(table_id))
