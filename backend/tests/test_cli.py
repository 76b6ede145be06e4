from comanda.models import User, Product, DiningTable
from comanda.services import register_service


def test_seed_demo_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "seed-demo"])
    second = runner.invoke(args=["system", "seed-demo"])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "0 users" in second.output
    assert User.query.count() == 5
    assert Product.query.count() == 5
    assert DiningTable.query.count() == 4


def test_low_stock_listing(app, db_session, make_product):
    make_product("Mousse", stock_quantity=1, min_stock=3)
    runner = app.test_cli_runner()

    result = runner.invoke(args=["inventory", "low-stock"])

    assert result.exit_code == 0
    assert "Mousse" in result.output


def test_register_sessions_listing(app, cashier):
    runner = app.test_cli_runner()
    assert "No sessions found." in runner.invoke(args=["registers", "sessions"]).output

    session = register_service.open_register_session(cashier.id, 2500)
    register_service.close_register_session(session.id, 2000)

    result = runner.invoke(args=["registers", "sessions", "--status", "closed"])

    assert result.exit_code == 0
    assert "-5.00" in result.output
