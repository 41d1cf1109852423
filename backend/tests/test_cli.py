"""
CLI command tests (flask users / products / ledger).
"""

from vendshop.extensions import db
from vendshop.models import User, Product


def test_users_create_and_credit(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--email", "cli@example.com", "--password", "hunter22"])
    assert result.exit_code == 0, result.output
    assert "PASS Created user: cli@example.com" in result.output

    result = runner.invoke(args=["users", "credit", "--email", "cli@example.com", "--amount", "12.5"])
    assert result.exit_code == 0, result.output
    assert "$12.50" in result.output

    user = db.session.query(User).filter_by(email="cli@example.com").one()
    assert user.balance_cents == 1250


def test_users_create_admin_flag(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create", "--email", "boss@example.com", "--password", "hunter22", "--admin"])
    assert result.exit_code == 0, result.output
    assert db.session.query(User).filter_by(email="boss@example.com").one().is_admin is True


def test_credit_unknown_user_fails(app, db_session):
    result = app.test_cli_runner().invoke(args=["users", "credit", "--email", "nobody@example.com", "--amount", "1"])
    assert result.exit_code == 1


def test_products_create_and_add_stock(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["products", "create", "--name", "Dirt Seed", "--price", "1.5", "--category", "seeds"])
    assert result.exit_code == 0, result.output
    product = db.session.query(Product).filter_by(name="Dirt Seed").one()
    assert product.price_cents == 150

    result = runner.invoke(args=[
        "products", "add-stock", "--product-id", str(product.id),
        "--unit", "D1", "--unit", "D2", "--unit", "D1",
    ])
    assert result.exit_code == 0, result.output
    assert "Skipped 1 duplicate" in result.output

    db.session.expire_all()
    assert db.session.get(Product, product.id).stock_data == ["D1", "D2"]


def test_products_create_rejects_zero_price(app, db_session):
    result = app.test_cli_runner().invoke(args=["products", "create", "--name", "Free", "--price", "0"])
    assert result.exit_code == 1
    assert "Invalid price" in result.output


def test_ledger_reconcile_exit_codes(app, make_user):
    user = make_user(balance=5.00)
    runner = app.test_cli_runner()

    result = runner.invoke(args=["ledger", "reconcile"])
    assert result.exit_code == 0, result.output
    assert "PASS" in result.output

    row = db.session.get(User, user.id)
    row.balance_cents = row.balance_cents + 7
    db.session.commit()

    result = runner.invoke(args=["ledger", "reconcile"])
    assert result.exit_code == 1
    assert f"FAIL user {user.id}" in result.output
