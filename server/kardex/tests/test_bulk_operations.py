from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from kardex.db import Base
from kardex.errors import TransactionConflictError
from kardex.inventory import bulk
from kardex.inventory.bulk import BulkOperation, run_bulk_operation
from kardex.inventory.service import create_inventory_item, find_ledger_discrepancies, list_movements
from kardex.models import InventoryItem, StockMovement


ORG = "org-a"


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


def seed_items(db, stocks, category="bebidas"):
    items = [
        create_inventory_item(db, org_id=ORG, name=f"Item {index}", category=category, initial_stock=Decimal(stock))
        for index, stock in enumerate(stocks)
    ]
    db.commit()
    return [item.id for item in items]


def manual_movements(db, item_id):
    return [movement for movement in list_movements(db, org_id=ORG, item_id=item_id) if movement.type == "out"]


def test_zero_stock_skips_empty_items():
    db = create_session()
    item_ids = seed_items(db, ["5", "0", "12"])
    seed_items(db, ["7"], category="secos")

    result = run_bulk_operation(db, org_id=ORG, operation=BulkOperation.ZERO_STOCK, category="bebidas", actor_id="manager")

    assert result.as_dict() == {"updated_or_deleted": 3, "movements_emitted": 2, "errors": 0}
    stocks = {item.id: item.stock for item in db.query(InventoryItem).all()}
    assert [stocks[item_id] for item_id in item_ids] == [Decimal("0"), Decimal("0"), Decimal("0")]
    assert sorted(stocks.values())[-1] == Decimal("7")
    assert len(manual_movements(db, item_ids[1])) == 0
    assert manual_movements(db, item_ids[2])[0].qty == Decimal("12")
    assert find_ledger_discrepancies(db, org_id=ORG) == []


def test_delete_item_logs_remaining_stock_before_removal():
    db = create_session()
    item_ids = seed_items(db, ["3", "0"])

    result = run_bulk_operation(db, org_id=ORG, operation="delete_item")

    assert result.as_dict() == {"updated_or_deleted": 2, "movements_emitted": 1, "errors": 0}
    assert db.query(InventoryItem).count() == 0
    deletion = db.query(StockMovement).filter(StockMovement.reason == "delete").one()
    assert deletion.item_id == item_ids[0]
    assert deletion.qty == Decimal("3")


def test_failing_item_is_counted_and_others_keep_their_changes(monkeypatch):
    db = create_session()
    item_ids = seed_items(db, ["5", "6", "7"])
    real_apply = bulk.apply_movement

    def flaky_apply(db, *, item_id, **kwargs):
        if item_id == item_ids[1]:
            raise TransactionConflictError(item_id)
        return real_apply(db, item_id=item_id, **kwargs)

    monkeypatch.setattr(bulk, "apply_movement", flaky_apply)

    result = run_bulk_operation(db, org_id=ORG, operation=BulkOperation.ZERO_STOCK)

    assert result.as_dict() == {"updated_or_deleted": 2, "movements_emitted": 2, "errors": 1}
    stocks = {item.id: item.stock for item in db.query(InventoryItem).all()}
    assert stocks[item_ids[0]] == Decimal("0")
    assert stocks[item_ids[1]] == Decimal("6")
    assert stocks[item_ids[2]] == Decimal("0")


def test_plain_value_error_does_not_abort_the_run(monkeypatch):
    db = create_session()
    item_ids = seed_items(db, ["5", "6", "7"])
    real_apply = bulk.apply_movement

    def rejecting_apply(db, *, item_id, **kwargs):
        if item_id == item_ids[0]:
            raise ValueError("Movement quantity must be non-zero.")
        return real_apply(db, item_id=item_id, **kwargs)

    monkeypatch.setattr(bulk, "apply_movement", rejecting_apply)

    result = run_bulk_operation(db, org_id=ORG, operation=BulkOperation.ZERO_STOCK)

    assert result.as_dict() == {"updated_or_deleted": 2, "movements_emitted": 2, "errors": 1}
    stocks = {item.id: item.stock for item in db.query(InventoryItem).all()}
    assert stocks[item_ids[0]] == Decimal("5")
    assert stocks[item_ids[2]] == Decimal("0")


def test_bulk_run_only_touches_its_org():
    db = create_session()
    seed_items(db, ["4"])
    other = create_inventory_item(db, org_id="org-b", name="Ajeno", initial_stock=Decimal("9"))
    db.commit()

    result = run_bulk_operation(db, org_id=ORG, operation=BulkOperation.ZERO_STOCK)

    assert result.updated_or_deleted == 1
    db.refresh(other)
    assert other.stock == Decimal("9")
