"""
API Routes for Mente Merecedora

Route modules:
- auth: Registration, login, password management
- profile: Profile details and photo
- diary: Diário Quântico entries and stats
- manifestation: Vision boards, checklists and symbols
- practices: Guided practices, favorites, history
- luzia: LUZ IA chat and conversations
- analytics: Personal and admin analytics
- content: Content library
- admin: Back-office
- media: Media proxy
"""

from mentemerecedora.api.routes.auth import router as auth_router
from mentemerecedora.api.routes.profile import router as profile_router
from mentemerecedora.api.routes.diary import router as diary_router
from mentemerecedora.api.routes.manifestation import router as manifestation_router
from mentemerecedora.api.routes.practices import router as practices_router
from mentemerecedora.api.routes.luzia import router as luzia_router
from mentemerecedora.api.routes.analytics import router as analytics_router
from mentemerecedora.api.routes.content import router as content_router
from mentemerecedora.api.routes.admin import router as admin_router
from mentemerecedora.api.routes.media import router as media_router

__all__ = [
    "auth_router",
    "profile_router",
    "diary_router",
    "manifestation_router",
    "practices_router",
    "luzia_router",
    "analytics_router",
    "content_router",
    "admin_router",
    "media_router",
]
