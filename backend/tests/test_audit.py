import pytest

from stockroom.core.exceptions import AuditImmutableError, InsufficientStockError, ValidationError
from stockroom.models.audit_entry import AuditEntry


class TestAuditLog:

    def test_one_entry_per_committed_mutation(self, bulk, poster, make_item, audit):
        item = make_item(quantity=5)
        bulk.update_one(item.id, {"name": "Renamed"})
        poster.adjust_stock(item.id, -2)
        poster.adjust_stock(item.id, 4)
        bulk.delete_one(item.id)

        actions = [e.action for e in audit.list(item_id=item.id)]
        # newest first
        assert actions == ["delete", "stock_in", "stock_out", "update", "insert"]

    def test_rejected_mutations_are_not_logged(self, bulk, poster, make_item, audit):
        item = make_item(quantity=1)
        with pytest.raises(InsufficientStockError):
            poster.adjust_stock(item.id, -2)
        with pytest.raises(ValidationError):
            bulk.update_one(item.id, {"quantity": -1})

        assert [e.action for e in audit.list(item_id=item.id)] == ["insert"]

    def test_insert_entry_snapshots_item(self, make_item, audit):
        item = make_item(sku="AU-1", quantity=3, unit_price="1.10")
        entry = audit.list(item_id=item.id)[0]

        assert entry.sku == "AU-1"
        assert entry.after["quantity"] == 3
        assert entry.after["unit_price"] == "1.10"
        assert entry.before is None
        assert entry.actor == "tester"

    def test_filters(self, bulk, poster, make_item, audit):
        a = make_item()
        make_item()
        poster.adjust_stock(a.id, 1)

        assert len(audit.list(action="insert")) == 2
        assert len(audit.list(item_id=a.id)) == 2
        assert len(audit.list(actor="nobody")) == 0
        assert len(audit.list(limit=1)) == 1

    def test_unknown_action_rejected(self, make_item, audit):
        item = make_item()
        with pytest.raises(ValueError):
            audit.append(action="rename", item=item, actor="tester")


class TestAppendOnly:

    def test_update_of_entry_is_blocked(self, make_item, db_session):
        make_item()
        entry = db_session.query(AuditEntry).first()

        entry.note = "rewritten"
        with pytest.raises(AuditImmutableError):
            db_session.commit()
        db_session.rollback()

        assert db_session.query(AuditEntry).first().note is None

    def test_delete_of_entry_is_blocked(self, make_item, db_session):
        make_item()
        entry = db_session.query(AuditEntry).first()

        db_session.delete(entry)
        with pytest.raises(AuditImmutableError):
            db_session.commit()
        db_session.rollback()

        assert db_session.query(AuditEntry).count() == 1
