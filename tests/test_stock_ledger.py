"""Stock guard: batch check, all-or-nothing decrement, conditional update."""

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from sareepos.extensions import db
from sareepos.models import StockItem
from sareepos.services import stock_ledger
from sareepos.services.purchase_errors import InsufficientStock, StockItemNotFound
from sareepos.services.stock_ledger import merge_demand, reserve_stock


def test_merge_demand():
    assert merge_demand([("a", 1), ("b", 2), ("a", 3)]) == {"a": 4, "b": 2}


def test_reserve_decrements_and_bumps_version(db_session, make_stock):
    stock = make_stock(quantity=5)
    version = stock.version_id

    reserve_stock({stock.id: 2})
    db_session.commit()

    assert stock.quantity == 3
    assert stock.version_id == version + 1


def test_reserve_does_not_commit(db_session, make_stock):
    stock = make_stock(quantity=5)

    reserve_stock({stock.id: 5})
    db_session.rollback()

    assert stock.quantity == 5


def test_exact_quantity_reaches_zero(db_session, make_stock):
    stock = make_stock(quantity=2)

    reserve_stock({stock.id: 2})
    db_session.commit()

    assert stock.quantity == 0


def test_reports_every_shortage(db_session, make_stock):
    a = make_stock(itemName="Banarasi", quantity=1)
    b = make_stock(itemName="Chanderi", quantity=1)
    c = make_stock(itemName="Mysore", quantity=9)

    with pytest.raises(InsufficientStock) as exc_info:
        reserve_stock({a.id: 2, b.id: 3, c.id: 1})

    short_ids = {s["stockId"] for s in exc_info.value.shortages}
    assert short_ids == {a.id, b.id}
    db_session.rollback()
    assert c.quantity == 9


def test_reports_every_missing_id(db_session, make_stock):
    stock = make_stock()

    with pytest.raises(StockItemNotFound) as exc_info:
        reserve_stock({stock.id: 1, "zz-missing": 1, "aa-missing": 1})

    assert exc_info.value.stock_ids == ["aa-missing", "zz-missing"]


@pytest.mark.parametrize("demand", [{}, {"x": 0}, {"x": -1}])
def test_rejects_empty_or_non_positive_demand(db_session, demand):
    with pytest.raises(ValueError):
        reserve_stock(demand)


def test_conditional_update_catches_stale_read(db_session, make_stock, monkeypatch):
    stock = make_stock(quantity=5)

    assert stock.quantity == 5

    # Another checkout sells everything after our read
    db_session.execute(
        update(StockItem)
        .where(StockItem.id == stock.id)
        .values(quantity=0)
        .execution_options(synchronize_session=False)
    )
    monkeypatch.setattr(stock_ledger, "load_stock_for_update", lambda ids: {stock.id: stock})

    with pytest.raises(InsufficientStock) as exc_info:
        reserve_stock({stock.id: 3})

    assert exc_info.value.available == 0
    db_session.rollback()


def test_quantity_check_constraint(db_session, make_stock):
    stock = make_stock(quantity=1)
    with pytest.raises(IntegrityError):
        db_session.execute(
            update(StockItem)
            .where(StockItem.id == stock.id)
            .values(quantity=-1)
            .execution_options(synchronize_session=False)
        )
    db.session.rollback()
