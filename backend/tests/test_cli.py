"""
CLI command tests (flask system / users / stats / maintenance).
"""

from datetime import timedelta

from coworkpos.extensions import db
from coworkpos.models import DailyStats, Product, SessionToken, User
from coworkpos.services import session_service
from coworkpos.time_utils import utcnow


class TestSystemInit:

    def test_init_creates_superadmin_and_menu(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert "DONE" in result.output

        admin = db.session.query(User).filter_by(username="superadmin").one()
        assert admin.role == "super_admin"
        assert db.session.query(Product).count() == 5

    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert "Using existing user" in result.output
        assert db.session.query(User).count() == 1
        assert db.session.query(Product).count() == 5


class TestUsersCommands:

    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "caisse1",
            "--password", "secret1",
            "--role", "cashier",
        ])
        assert result.exit_code == 0, result.output
        assert db.session.query(User).filter_by(username="caisse1").one().role == "cashier"

        result = runner.invoke(args=["users", "list"])
        assert "caisse1" in result.output

    def test_short_password_fails(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--username", "caisse1", "--password", "abc", "--role", "cashier",
        ])
        assert result.exit_code != 0
        assert db.session.query(User).count() == 0


class TestStatsCommands:

    def test_close_day(self, app, client, cashier_headers):
        client.post(
            "/api/transactions",
            json={"type": "entry", "paymentMethod": "cash", "date": "2024-03-01T10:00:00Z"},
            headers=cashier_headers,
        )
        row = db.session.query(DailyStats).one()
        row.total_revenue_cents = 0
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["stats", "close-day", "--date", "2024-03-01"])
        assert result.exit_code == 0, result.output
        db.session.expire_all()
        assert db.session.query(DailyStats).one().total_revenue_cents == 2500

    def test_close_day_bad_date(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["stats", "close-day", "--date", "demain"])
        assert result.exit_code != 0


class TestMaintenanceCommands:

    def test_cleanup_sessions(self, app, cashier):
        old, _ = session_service.create_session(user_id=cashier.id)
        old.created_at = utcnow() - timedelta(days=40)
        old.expires_at = utcnow() - timedelta(days=39)
        session_service.create_session(user_id=cashier.id)
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])
        assert result.exit_code == 0, result.output
        assert "Deleted 1 sessions" in result.output
        assert db.session.query(SessionToken).count() == 1
