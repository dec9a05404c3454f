"""
Tests for the audit trail sinks.
"""

from unittest.mock import MagicMock

import pytest

from patronclean.models.action_log import ActionLog
from patronclean.services.audit import (
    VALIDATION,
    DatabaseAuditSink,
    InMemoryAuditSink,
    make_entry,
)


class TestMakeEntry:
    def test_reference_qualified_with_sheet(self):
        entry = make_entry(VALIDATION, "Mobile Validation", "Patrons", "B7", "Formatted 'a' to 'b'.")
        assert entry.cell_reference == "Patrons!B7"
        assert entry.timestamp is not None

    def test_entries_immutable(self):
        entry = make_entry(VALIDATION, "Mobile Validation", "Patrons", "B7", "x")
        with pytest.raises(Exception):
            entry.details = "changed"


class TestInMemoryAuditSink:
    def test_filter_by_target(self):
        sink = InMemoryAuditSink()
        sink.append(make_entry(VALIDATION, "Mobile Validation", "S", "A2", "x"))
        sink.append(make_entry(VALIDATION, "Email Validation", "S", "B2", "y"))
        assert [e.cell_reference for e in sink.for_target("Email Validation")] == ["S!B2"]


class TestDatabaseAuditSink:
    @pytest.fixture
    def mock_db(self):
        return MagicMock()

    def test_adds_action_log(self, mock_db):
        sink = DatabaseAuditSink(mock_db, table_id="t1")
        entry = make_entry(VALIDATION, "Aadhaar Validation", "Patrons", "C3", "Removed invalid Aadhaar.")
        sink.append(entry)

        mock_db.add.assert_called_once()
        row = mock_db.add.call_args[0][0]
        assert isinstance(row, ActionLog)
        assert row.table_id == "t1"
        assert row.target == "Aadhaar Validation"
        assert row.cell_reference == "Patrons!C3"
        assert row.timestamp == entry.timestamp

    def test_does_not_commit(self, mock_db):
        DatabaseAuditSink(mock_db).append(make_entry(VALIDATION, "t", "S", "A2", "x"))
        mock_db.commit.assert_not_called()
