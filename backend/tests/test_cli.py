from salestock.models import User


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "manager",
        "--full-name", "Store Manager",
        "--password", "Password123!",
        "--role", "admin",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS Created user: manager" in result.output
    assert User.query.filter_by(username="manager").one().role == "admin"

    listing = runner.invoke(args=["users", "list"])
    assert "manager" in listing.output
    assert "Store Manager" in listing.output


def test_users_create_rejects_short_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--username", "x", "--password", "short", "--role", "seller",
    ])
    assert result.exit_code != 0
    assert "at least 8 characters" in result.output


def test_settings_show(app, db_session):
    result = app.test_cli_runner().invoke(args=["settings", "show"])
    assert result.exit_code == 0
    assert "USD/HTG rate:     132" in result.output
    assert "Source:           config" in result.output


def test_init_db_is_idempotent(app, db_session):
    result = app.test_cli_runner().invoke(args=["init-db"])
    assert result.exit_code == 0
    assert "PASS" in result.output
