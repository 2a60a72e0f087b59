"""
Pytest configuration and fixtures for Mente Merecedora tests.
"""

from datetime import timedelta
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from mentemerecedora.api.main import create_app
from mentemerecedora.api.dependencies import Settings, ServiceContainer
from mentemerecedora.security import create_access_token, get_password_hash
from mentemerecedora.storage.models import UserRole, UserStatus
from mentemerecedora.storage.user_repository import StoredUser

TEST_PASSWORD = "segredo123"


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings(tmp_path: Path) -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        database_echo=False,
        jwt_secret="test-secret",
        media_root=str(tmp_path / "media"),
        knowledge_base_path=str(tmp_path / "transcricoes"),
        environment="test",
        debug=False,
        rate_limit_enabled=False,
        llm_provider="mock",
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return get_test_settings(tmp_path)


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app(settings):
    """Create FastAPI application for testing."""
    application = create_app(settings)
    # ASGITransport does not run the lifespan
    application.state.services.startup()

    yield application

    application.state.services.shutdown()


@pytest.fixture
def services(app) -> ServiceContainer:
    return app.state.services


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# User Fixtures
# =============================================================================

def make_user(
    services: ServiceContainer,
    name: str = "Ana Souza",
    email: str = "ana@example.com",
    password: str = TEST_PASSWORD,
    role: UserRole = UserRole.USER,
    status: UserStatus = UserStatus.APPROVED,
) -> StoredUser:
    return services.user_repository.create(
        name=name,
        email=email,
        hashed_password=get_password_hash(password),
        role=role.value,
        status=status.value,
    )


def token_for(services: ServiceContainer, user: StoredUser, expires: timedelta = None) -> str:
    settings = services.settings
    return create_access_token(
        {"sub": user.id},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=expires,
    )


def headers_for(services: ServiceContainer, user: StoredUser) -> dict:
    return {"Authorization": f"Bearer {token_for(services, user)}"}


@pytest.fixture
def user(services) -> StoredUser:
    return make_user(services)


@pytest.fixture
def user_headers(services, user) -> dict:
    return headers_for(services, user)


@pytest.fixture
def other_user(services) -> StoredUser:
    return make_user(services, name="Bia Lima", email="bia@example.com")


@pytest.fixture
def other_headers(services, other_user) -> dict:
    return headers_for(services, other_user)


@pytest.fixture
def admin(services) -> StoredUser:
    return make_user(services, name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def admin_headers(services, admin) -> dict:
    return headers_for(services, admin)


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def diary_entry_data() -> dict:
    return {
        "date": "2024-05-10",
        "emotional_state": "Tranquila e confiante",
        "predominant_thoughts": "Estou no caminho certo",
        "small_wins": "Meditei 20 minutos",
        "next_day_goals": "Praticar a visualização",
        "gratitude": "Pela minha família",
        "emotional_rating": 4,
    }


@pytest.fixture
def practice_data() -> dict:
    return {
        "title": "Meditação do Estado Alpha",
        "description": "Relaxamento guiado para acessar o estado Alpha",
        "category": "alpha",
        "duration": 900,
        "featured": True,
    }
