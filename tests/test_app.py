from app import create_app, ensure_default_admin
from extensions import db
from models import User
from tests.conftest import CITIZEN_ID


def test_seed_reference_data_command(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed-reference-data"])
    assert "Added 2 categories and 3 locations." in first.output

    again = runner.invoke(args=["seed-reference-data"])
    assert "Added 0 categories and 0 locations." in again.output


def test_default_admin_is_provisioned(app):
    app.config.update(DEFAULT_ADMIN_EMAIL="Root@Example.com", DEFAULT_ADMIN_PASSWORD="bootstrap-pass")

    with app.app_context():
        ensure_default_admin(app)
        admin = User.query.filter_by(email="root@example.com").one()
        assert admin.role == "Admin"
        assert admin.id.startswith("ADM")

        # Running again leaves a single account.
        ensure_default_admin(app)
        assert User.query.filter_by(email="root@example.com").count() == 1


def test_default_admin_promotes_existing_account(app):
    app.config.update(DEFAULT_ADMIN_EMAIL="citizen@example.com", DEFAULT_ADMIN_PASSWORD="bootstrap-pass")

    with app.app_context():
        ensure_default_admin(app)
        assert db.session.get(User, CITIZEN_ID).role == "Admin"


def test_testing_config_selected():
    app = create_app("testing")

    assert app.config["TESTING"] is True
    assert app.config["SQLALCHEMY_DATABASE_URI"] == "sqlite://"
    assert app.config["WTF_CSRF_ENABLED"] is False
