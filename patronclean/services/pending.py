"""Stores for suspended operations (see ``schemas.pending``)."""

from typing import Dict, List, Protocol

from patronclean.exceptions import PendingOperationNotFound
from patronclean.schemas.pending import PendingOperation, dump_pending, load_pending


class PendingStore(Protocol):
    def save(self, operation: PendingOperation) -> None: ...

    def get(self, operation_id: str) -> PendingOperation: ...

    def delete(self, operation_id: str) -> None: ...

    def list_for_table(self, table_id: str) -> List[PendingOperation]: ...


class InMemoryPendingStore:
    """Keeps serialised operations so the round trip matches the Redis store."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def save(self, operation: PendingOperation) -> None:
        self._items[operation.operation_id] = dump_pending(operation)

    def get(self, operation_id: str) -> PendingOperation:
        raw = self._items.get(operation_id)
        if raw is None:
            raise PendingOperationNotFound(f"No pending operation {operation_id}")
        return load_pending(raw)

    def delete(self, operation_id: str) -> None:
        self._items.pop(operation_id, None)

    def list_for_table(self, table_id: str) -> List[PendingOperation]:
        operations = [load_pending(raw) for raw in self._items.values()]
        return sorted(
            (op for op in operations if op.table_id == table_id),
            key=lambda op: op.created_at,
        )


class RedisPendingStore:
    """Pending operations in Redis, never expiring, indexed per table."""

    def __init__(self, client):
        self.client = client

    @staticmethod
    def _key(operation_id: str) -> str:
        return f"pending:{operation_id}"

    @staticmethod
    def _index_key(table_id: str) -> str:
        return f"pending_index:{table_id}"

    def save(self, operation: PendingOperation) -> None:
        self.client.set(self._key(operation.operation_id), dump_pending(operation))
        self.client.sadd(self._index_key(operation.table_id), operation.operation_id)

    def get(self, operation_id: str) -> PendingOperation:
        raw = self.client.get(self._key(operation_id))
        if raw is None:
            raise PendingOperationNotFound(f"No pending operation {operation_id}")
        return load_pending(raw)

    def delete(self, operation_id: str) -> None:
        raw = self.client.get(self._key(operation_id))
        if raw is None:
            return
        operation = load_pending(raw)
        self.client.delete(self._key(operation_id))
        self.client.srem(self._index_key(operation.table_id), operation_id)

    def list_for_table(self, table_id: str) -> List[PendingOperation]:
        operations = []
        for operation_id in self.client.smembers(self._index_key(table_id)):
            raw = self.client.get(self._key(operation_id))
            if raw is not None:
                operations.append(load_pending(raw))
        return sorted(operations, key=lambda op: op.created_at)
