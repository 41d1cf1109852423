"""
Concurrency tests against a file-backed SQLite database with real threads.

Verifies:
- The last unit is sold exactly once
- Concurrent purchases never overdraw a balance or duplicate a unit
- Concurrent credits are all recorded
- A GrowID can only be claimed by one of two racing users
"""

import os
import threading

import pytest

from vendshop import create_app
from vendshop.extensions import db
from vendshop.models import User, Product, Purchase, Transaction
from vendshop.services import growid_service, ledger_service, purchase_service, wallet_service
from vendshop.services.purchase_service import PurchaseError


@pytest.fixture
def file_app(tmp_path):
    db_path = os.path.join(str(tmp_path), "concurrency.db")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'WRITE_RETRY_ATTEMPTS': 5,
    })

    with app.app_context():
        db.drop_all()
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


def _seed_user(app, balance=None, email="concurrent@example.com"):
    with app.app_context():
        user = User(email=email, password_hash="dummy", balance_cents=0)
        db.session.add(user)
        db.session.commit()
        user_id = user.id
        if balance:
            wallet_service.top_up(user_id, balance)
        return user_id


def _seed_product(app, price_cents, stock):
    with app.app_context():
        product = Product(name="Race Item", price_cents=price_cents, stock_data=list(stock))
        db.session.add(product)
        db.session.commit()
        return product.id


def _run_threads(app, targets):
    """Start one thread per callable, each in its own app context; collect results."""
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(len(targets))

    def worker(fn):
        with app.app_context():
            try:
                barrier.wait()
                value = fn()
                with lock:
                    results.append(("ok", value))
            except Exception as exc:
                with lock:
                    results.append(("error", exc))
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(fn,)) for fn in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_last_unit_sold_once(file_app):
    buyer_a = _seed_user(file_app, balance=10.00, email="a@example.com")
    buyer_b = _seed_user(file_app, balance=10.00, email="b@example.com")
    product_id = _seed_product(file_app, 500, ["LAST"])

    results = _run_threads(file_app, [
        lambda: purchase_service.purchase(buyer_a, product_id, 1).units_delivered,
        lambda: purchase_service.purchase(buyer_b, product_id, 1).units_delivered,
    ])

    successes = [value for status, value in results if status == "ok"]
    failures = [value for status, value in results if status == "error"]
    assert successes == [["LAST"]]
    assert len(failures) == 1
    assert isinstance(failures[0], PurchaseError)
    assert str(failures[0]) == "Product is out of stock"

    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_data == []
        assert db.session.query(Purchase).count() == 1
        balances = sorted(db.session.get(User, uid).balance_cents for uid in (buyer_a, buyer_b))
        assert balances == [500, 1000]
        assert all(r.balanced for r in ledger_service.reconcile_all())


def test_concurrent_purchases_never_overdraw(file_app):
    buyer = _seed_user(file_app, balance=30.00)
    product_id = _seed_product(file_app, 1000, [f"U{i}" for i in range(10)])

    results = _run_threads(
        file_app,
        [lambda: purchase_service.purchase(buyer, product_id, 1).units_delivered for _ in range(5)],
    )

    successes = [value for status, value in results if status == "ok"]
    failures = [value for status, value in results if status == "error"]
    assert len(successes) == 3
    assert all(isinstance(exc, PurchaseError) for exc in failures)
    assert all(str(exc) == "Insufficient balance" for exc in failures)

    delivered = [unit for units in successes for unit in units]
    assert len(delivered) == len(set(delivered))

    with file_app.app_context():
        assert db.session.get(User, buyer).balance_cents == 0
        remaining = db.session.get(Product, product_id).stock_data
        assert len(remaining) == 7
        assert not set(remaining) & set(delivered)
        assert sorted(delivered + remaining) == sorted(f"U{i}" for i in range(10))
        assert ledger_service.reconcile_user(buyer).balanced


def test_concurrent_top_ups_all_recorded(file_app):
    user_id = _seed_user(file_app)

    results = _run_threads(file_app, [lambda: wallet_service.top_up(user_id, 1.00) for _ in range(8)])

    assert all(status == "ok" for status, _ in results)
    with file_app.app_context():
        assert db.session.get(User, user_id).balance_cents == 800
        assert db.session.query(Transaction).filter_by(user_id=user_id).count() == 8
        assert ledger_service.reconcile_user(user_id).balanced


def test_grow_id_race_has_one_winner(file_app):
    first = _seed_user(file_app, email="first@example.com")
    second = _seed_user(file_app, email="second@example.com")

    results = _run_threads(file_app, [
        lambda: growid_service.set_grow_id(first, "Contested").id,
        lambda: growid_service.set_grow_id(second, "contested").id,
    ])

    winners = [value for status, value in results if status == "ok"]
    assert len(winners) == 1

    with file_app.app_context():
        holders = db.session.query(User).filter_by(grow_id="contested").all()
        assert [u.id for u in holders] == winners
