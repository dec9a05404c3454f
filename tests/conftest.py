import pytest

from patronclean.exceptions import LookupFailure
from patronclean.services.audit import InMemoryAuditSink
from patronclean.services.table import DataFrameTable


class FakeRedis:
    """Dict-backed stand-in for the handful of redis-py calls the app makes."""

    def __init__(self):
        self.values = {}
        self.sets = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None)
            removed += int(self.sets.pop(key, None) is not None)
        return removed

    def sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    def srem(self, key, *members):
        bucket = self.sets.get(key, set())
        for member in members:
            bucket.discard(member)
        return len(members)

    def smembers(self, key):
        return set(self.sets.get(key, set()))


class FakeMxLookup:
    """Answers MX queries from a dict and records every domain asked."""

    def __init__(self, answers=None, failing=()):
        self.answers = answers or {}
        self.failing = set(failing)
        self.calls = []

    def has_mx(self, domain):
        self.calls.append(domain)
        if domain in self.failing:
            raise LookupFailure("resolver unavailable")
        return self.answers.get(domain, True)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def audit():
    return InMemoryAuditSink()


@pytest.fixture
def mx_lookup():
    return FakeMxLookup()


def make_table(header, values, name="Patrons"):
    """Single-column table: header in row 1, values from row 2."""
    return DataFrameTable.from_rows([[header]] + [[v] for v in values], name=name)


@pytest.fixture
def column_table():
    return make_table
