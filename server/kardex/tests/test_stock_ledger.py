from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from kardex.db import Base
from kardex.errors import InsufficientStockError, ItemNotFoundError, TransactionConflictError
from kardex.inventory.service import (
    adjust_stock_to,
    apply_movement,
    create_inventory_item,
    find_ledger_discrepancies,
    find_low_stock,
    get_item,
    list_movements,
    move_stock,
    normalize_reason,
    replay_stock,
    run_with_conflict_retry,
    update_inventory_item,
)
from kardex.models import MovementReason, StockMovement


ORG = "org-a"


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


def create_item(db, name="Harina", stock=Decimal("0"), unit="g", cost=Decimal("0"), category=None, org_id=ORG):
    item = create_inventory_item(
        db,
        org_id=org_id,
        name=name,
        unit=unit,
        cost_per_unit=cost,
        category=category,
        initial_stock=stock,
    )
    db.commit()
    return item


def test_initial_stock_is_recorded_as_manual_movement():
    db = create_session()
    item = create_item(db, stock=Decimal("100"))

    movements = list_movements(db, org_id=ORG, item_id=item.id)

    assert item.stock == Decimal("100")
    assert item.category == "otros"
    assert len(movements) == 1
    assert movements[0].type == "in"
    assert movements[0].qty == Decimal("100")
    assert movements[0].reason == MovementReason.MANUAL.value


def test_apply_movement_out_records_kardex_row():
    db = create_session()
    item = create_item(db, stock=Decimal("100"))

    movement = apply_movement(db, org_id=ORG, item_id=item.id, delta=Decimal("-30"), reason="sale", actor_id="u1")
    db.commit()
    db.refresh(item)

    assert item.stock == Decimal("70")
    assert movement.type == "out"
    assert movement.qty == Decimal("30")
    assert movement.reason == "sale"
    assert movement.item_name == "Harina"
    assert movement.unit == "g"
    assert movement.actor_id == "u1"
    assert len(movement.date_key) == 10


def test_apply_movement_refuses_negative_stock_and_writes_nothing():
    db = create_session()
    item = create_item(db, stock=Decimal("10"))

    with pytest.raises(InsufficientStockError) as excinfo:
        apply_movement(db, org_id=ORG, item_id=item.id, delta=Decimal("-30"), reason="sale")
    db.rollback()

    error = excinfo.value
    assert error.have == Decimal("10")
    assert error.need == Decimal("30")
    assert error.missing == Decimal("20")
    assert "missing 20 g" in str(error)
    assert get_item(db, org_id=ORG, item_id=item.id).stock == Decimal("10")
    assert db.query(StockMovement).filter(StockMovement.reason == "sale").count() == 0


def test_apply_movement_rejects_zero_delta():
    db = create_session()
    item = create_item(db, stock=Decimal("5"))

    with pytest.raises(ValueError):
        apply_movement(db, org_id=ORG, item_id=item.id, delta=Decimal("0"), reason="manual")


def test_items_are_scoped_to_their_org():
    db = create_session()
    item = create_item(db, stock=Decimal("5"), org_id="org-b")

    with pytest.raises(ItemNotFoundError):
        apply_movement(db, org_id=ORG, item_id=item.id, delta=Decimal("1"), reason="manual")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("sale", MovementReason.SALE),
        (" Cancel ", MovementReason.CANCEL),
        ("purchase", MovementReason.PURCHASE),
        ("stolen", MovementReason.NONE),
        (None, MovementReason.NONE),
    ],
)
def test_reason_normalization(raw, expected):
    assert normalize_reason(raw) == expected


def test_manual_move_defaults_reason_and_maps_unknown_to_none():
    db = create_session()
    item = create_item(db, stock=Decimal("10"))

    default = move_stock(db, org_id=ORG, item_id=item.id, direction="in", qty=Decimal("2"))
    unknown = move_stock(db, org_id=ORG, item_id=item.id, direction="out", qty=Decimal("1"), reason="spilled")
    db.commit()

    assert default.reason == "manual"
    assert unknown.reason == "none"
    assert get_item(db, org_id=ORG, item_id=item.id).stock == Decimal("11")


def test_manual_move_validates_direction_and_qty():
    db = create_session()
    item = create_item(db, stock=Decimal("10"))

    with pytest.raises(ValueError):
        move_stock(db, org_id=ORG, item_id=item.id, direction="sideways", qty=Decimal("1"))
    with pytest.raises(ValueError):
        move_stock(db, org_id=ORG, item_id=item.id, direction="in", qty=Decimal("0"))


def test_adjust_to_counted_stock_emits_difference():
    db = create_session()
    item = create_item(db, stock=Decimal("10"))

    down = adjust_stock_to(db, org_id=ORG, item_id=item.id, target=Decimal("4"))
    same = adjust_stock_to(db, org_id=ORG, item_id=item.id, target=Decimal("4"))
    db.commit()

    assert down.type == "out"
    assert down.qty == Decimal("6")
    assert same is None
    assert get_item(db, org_id=ORG, item_id=item.id).stock == Decimal("4")


def test_item_update_cannot_touch_stock():
    db = create_session()
    item = create_item(db, stock=Decimal("10"))

    with pytest.raises(ValueError):
        update_inventory_item(db, org_id=ORG, item_id=item.id, payload={"stock": Decimal("99")})

    updated = update_inventory_item(db, org_id=ORG, item_id=item.id, payload={"name": "Harina 000", "category": "secos"})
    db.commit()
    assert updated.name == "Harina 000"
    assert updated.category == "secos"
    assert updated.stock == Decimal("10")


def test_replay_matches_stock_after_mixed_movements():
    db = create_session()
    item = create_item(db, stock=Decimal("50"))
    apply_movement(db, org_id=ORG, item_id=item.id, delta=Decimal("-20"), reason="sale")
    apply_movement(db, org_id=ORG, item_id=item.id, delta=Decimal("5"), reason="cancel")
    adjust_stock_to(db, org_id=ORG, item_id=item.id, target=Decimal("30"))
    db.commit()

    assert replay_stock(db, org_id=ORG, item_id=item.id) == Decimal("30")
    assert find_ledger_discrepancies(db, org_id=ORG) == []


def test_discrepancy_is_reported_when_stock_bypasses_ledger():
    db = create_session()
    item = create_item(db, stock=Decimal("50"))
    item.stock = Decimal("45")
    db.commit()

    discrepancies = find_ledger_discrepancies(db, org_id=ORG)

    assert len(discrepancies) == 1
    assert discrepancies[0]["item_id"] == item.id
    assert discrepancies[0]["difference"] == Decimal("-5")


def _file_sessions(tmp_path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'kardex.db'}")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def test_concurrent_update_surfaces_as_conflict(tmp_path):
    Session = _file_sessions(tmp_path)
    with Session() as setup:
        item_id = create_item(setup, stock=Decimal("10")).id

    db = Session()
    other = Session()
    stale = get_item(db, org_id=ORG, item_id=item_id)
    apply_movement(other, org_id=ORG, item_id=item_id, delta=Decimal("-2"), reason="sale")
    other.commit()

    with pytest.raises(TransactionConflictError):
        apply_movement(db, org_id=ORG, item_id=item_id, delta=Decimal("-3"), reason="sale")
    db.rollback()
    assert stale.stock == Decimal("8")

    apply_movement(db, org_id=ORG, item_id=item_id, delta=Decimal("-3"), reason="sale")
    db.commit()
    assert get_item(db, org_id=ORG, item_id=item_id).stock == Decimal("5")
    db.close()
    other.close()


def test_conflict_retry_reruns_operation_on_fresh_state(tmp_path):
    Session = _file_sessions(tmp_path)
    with Session() as setup:
        item_id = create_item(setup, stock=Decimal("10")).id

    db = Session()
    other = Session()
    attempts = []
    loaded = []

    def operation():
        attempts.append(1)
        loaded.append(get_item(db, org_id=ORG, item_id=item_id))
        if len(attempts) == 1:
            apply_movement(other, org_id=ORG, item_id=item_id, delta=Decimal("-2"), reason="sale")
            other.commit()
        return apply_movement(db, org_id=ORG, item_id=item_id, delta=Decimal("-3"), reason="sale")

    run_with_conflict_retry(db, operation, attempts=3)

    assert len(attempts) == 2
    assert get_item(db, org_id=ORG, item_id=item_id).stock == Decimal("5")
    assert replay_stock(db, org_id=ORG, item_id=item_id) == Decimal("5")
    db.close()
    other.close()


def test_conflict_retry_rolls_back_business_errors():
    db = create_session()
    item = create_item(db, stock=Decimal("1"))

    with pytest.raises(InsufficientStockError):
        run_with_conflict_retry(
            db,
            lambda: apply_movement(db, org_id=ORG, item_id=item.id, delta=Decimal("-2"), reason="sale"),
        )

    assert get_item(db, org_id=ORG, item_id=item.id).stock == Decimal("1")


def test_low_stock_lists_items_below_minimum_with_refill_quantity():
    db = create_session()
    short = create_inventory_item(db, org_id=ORG, name="Leche", unit="ml", min_stock=Decimal("500"), initial_stock=Decimal("120"))
    create_inventory_item(db, org_id=ORG, name="Azucar", min_stock=Decimal("100"), initial_stock=Decimal("100"))
    create_inventory_item(db, org_id=ORG, name="Vasos", initial_stock=Decimal("0"))
    create_inventory_item(db, org_id="org-b", name="Leche", min_stock=Decimal("500"), initial_stock=Decimal("0"))
    db.commit()

    suggestions = find_low_stock(db, org_id=ORG)

    assert [row["item_id"] for row in suggestions] == [short.id]
    assert suggestions[0]["stock"] == Decimal("120")
    assert suggestions[0]["min_stock"] == Decimal("500")
    assert suggestions[0]["suggested_qty"] == Decimal("880")
