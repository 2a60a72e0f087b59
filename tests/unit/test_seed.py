"""
Unit tests for the admin seeding command.
"""

import pytest

from mentemerecedora.security import get_password_hash, verify_password
from mentemerecedora.seed import ensure_admin, main
from mentemerecedora.storage.database import Database
from mentemerecedora.storage.user_repository import UserRepository


class TestEnsureAdmin:
    """Tests for ensure_admin."""

    @pytest.fixture
    def repo(self):
        database = Database("sqlite:///:memory:")
        database.create_tables()
        yield UserRepository(database)
        database.dispose()

    def test_creates_approved_admin(self, repo):
        user, created = ensure_admin(repo, "Admin", "admin@example.com", "segredo123")

        assert created
        assert user.is_admin
        assert user.is_approved
        assert verify_password("segredo123", user.hashed_password)

    def test_promotes_existing_account(self, repo):
        existing = repo.create(
            name="Ana",
            email="ana@example.com",
            hashed_password=get_password_hash("antiga123"),
        )

        user, created = ensure_admin(repo, "Ignorado", "ana@example.com", None)

        assert not created
        assert user.id == existing.id
        assert user.is_admin and user.is_approved
        assert verify_password("antiga123", user.hashed_password)

    def test_resets_password_when_given(self, repo):
        repo.create(name="Ana", email="ana@example.com", hashed_password=get_password_hash("antiga123"))

        user, _ = ensure_admin(repo, "Ana", "ana@example.com", "nova1234")
        assert verify_password("nova1234", user.hashed_password)

    @pytest.mark.parametrize("password", [None, "123"])
    def test_new_admin_needs_password(self, repo, password):
        with pytest.raises(ValueError):
            ensure_admin(repo, "Admin", "admin@example.com", password)


class TestMain:

    def test_creates_admin_in_database(self, tmp_path, capsys):
        url = f"sqlite:///{tmp_path / 'seed.db'}"

        code = main(["--email", "admin@example.com", "--password", "segredo123", "--database-url", url])

        assert code == 0
        assert "admin@example.com created" in capsys.readouterr().out

        database = Database(url)
        user = UserRepository(database).get_by_email("admin@example.com")
        database.dispose()
        assert user.is_admin

    def test_short_password_fails(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'seed.db'}"
        assert main(["--email", "admin@example.com", "--password", "123", "--database-url", url]) == 1
