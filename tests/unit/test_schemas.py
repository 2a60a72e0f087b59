"""
Unit tests for request normalization in the API schemas.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from mentemerecedora.api.schemas import (
    ChatRequest,
    DiaryEntryCreate,
    ManifestationCreate,
    ManifestationUpdate,
    Pagination,
    UserResponse,
    media_url,
    normalize_keywords,
)
from mentemerecedora.storage.models import DEFAULT_PROFILE_IMAGE


DIARY_FIELDS = {
    "emotional_state": "Calma",
    "predominant_thoughts": "Confiança",
    "small_wins": "Caminhei",
    "next_day_goals": "Meditar",
}


class TestNormalizeKeywords:
    """Tests for keyword normalization."""

    @pytest.mark.parametrize("value", [
        ["abundância", "merecimento"],
        '["abundância", "merecimento"]',
        "abundância, merecimento",
        "[abundância, merecimento]",
    ])
    def test_equivalent_forms(self, value):
        assert normalize_keywords(value) == ["abundância", "merecimento"]

    def test_trims_and_deduplicates(self):
        assert normalize_keywords(" luz , luz,  paz ,, ") == ["luz", "paz"]

    def test_empty(self):
        assert normalize_keywords(None) == []
        assert normalize_keywords("   ") == []

    def test_rejects_other_types(self):
        with pytest.raises(ValueError):
            normalize_keywords(42)


class TestManifestationSchemas:
    """Tests for manifestation create/update models."""

    def test_single_affirmation_becomes_highlighted(self):
        item = ManifestationCreate(tipo="quadro", title="Meu Quadro", affirmation="  Eu mereço  ")

        assert len(item.affirmations) == 1
        assert item.affirmations[0].text == "Eu mereço"
        assert item.affirmations[0].highlighted is True

    def test_explicit_affirmations_win(self):
        item = ManifestationCreate(
            tipo="quadro",
            title="Meu Quadro",
            affirmation="ignorada",
            affirmations=[{"text": "Sou próspera"}],
        )
        assert [a.text for a in item.affirmations] == ["Sou próspera"]
        assert item.affirmations[0].highlighted is False

    def test_symbol_name_fills_title(self):
        item = ManifestationCreate(tipo="simbolo", name="Chave Dourada", keywords="ouro, chave")

        assert item.title == "Chave Dourada"
        assert item.keywords == ["ouro", "chave"]

    def test_missing_title_rejected(self):
        with pytest.raises(ValidationError):
            ManifestationCreate(tipo="checklist")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            ManifestationCreate(tipo="mural", title="X")

    def test_storage_fields_only_supplied(self):
        update = ManifestationUpdate(title="Novo", color="#fff")
        assert update.storage_fields() == {"title": "Novo", "color": "#fff"}


class TestDiaryEntryCreate:
    """Tests for diary date handling."""

    def test_iso_datetime_truncated_to_day(self):
        entry = DiaryEntryCreate(date="2024-05-10T23:30:00.000Z", **DIARY_FIELDS)
        assert entry.date == date(2024, 5, 10)

    def test_date_optional(self):
        entry = DiaryEntryCreate(**DIARY_FIELDS)
        assert entry.date is None
        assert entry.emotional_rating == 3

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_bounds(self, rating):
        with pytest.raises(ValidationError):
            DiaryEntryCreate(emotional_rating=rating, **DIARY_FIELDS)


class TestMisc:

    def test_chat_question_stripped(self):
        with pytest.raises(ValidationError):
            ChatRequest(question="   ")
        assert ChatRequest(question=" Olá ").question == "Olá"

    def test_media_url(self):
        assert media_url(None) is None
        assert media_url("perfil/a.png") == "/api/proxy/media/perfil/a.png"
        assert media_url("https://cdn.example.com/a.png") == "https://cdn.example.com/a.png"

    def test_default_profile_image_has_no_url(self):
        user = UserResponse(
            id="1", name="Ana", email="ana@example.com",
            role="user", status="approved", profile_image=DEFAULT_PROFILE_IMAGE,
        )
        assert user.profile_image_url is None

    def test_pagination(self):
        page = Pagination.build(page=2, limit=10, total=25)
        assert page.pages == 3
        assert page.next == 3
        assert page.prev == 1

        last = Pagination.build(page=3, limit=10, total=25)
        assert last.next is None
