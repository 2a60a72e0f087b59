"""
Analytics API Routes

Personal progress (totals, recent activity, period buckets, milestones)
and admin-wide usage statistics.
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger

from mentemerecedora.api.dependencies import (
    ServiceContainer,
    get_current_user,
    get_service_container,
    require_admin,
)
from mentemerecedora.api.schemas import DataResponse
from mentemerecedora.insights import (
    MilestoneInputs,
    Period,
    build_milestones,
    consecutive_days,
    count_by_period,
    resolve_window,
    sum_by_period,
)
from mentemerecedora.storage.practice_repository import PracticeEvent
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/analytics", tags=["analytics"])

ACTIVE_USER_WINDOW_DAYS = 7


# =============================================================================
# Personal analytics
# =============================================================================

@router.get("/me", response_model=DataResponse[dict])
def my_summary(
    current_user: StoredUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_service_container),
):
    """Totals, diary streak and completed practices per category."""
    user_id = current_user.id
    practices = services.practice_repository

    by_category: dict[str, int] = {}
    for record in practices.completions(user_id):
        by_category[record.practice_category] = by_category.get(record.practice_category, 0) + 1

    return {
        "data": {
            "totals": {
                "diary_entries": services.diary_repository.count(user_id),
                "conversations": services.conversation_repository.count(user_id),
                "manifestations": services.manifestation_repository.count(user_id),
                "completed_practices": practices.count_records(user_id, PracticeEvent.COMPLETION),
                "practice_minutes": practices.total_duration(user_id) // 60,
            },
            "diary_streak": consecutive_days(
                services.diary_repository.entry_dates(user_id),
                today=datetime.utcnow().date(),
                require_recent=True,
            ),
            "practices_by_category": by_category,
        }
    }


@router.get("/me/recent-activity", response_model=DataResponse[list[dict]])
def my_recent_activity(
    limit: int = Query(10, ge=1, le=50),
    current_user: StoredUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_service_container),
):
    """Diary entries, conversations and completed practices, newest first."""
    user_id = current_user.id
    activities = []

    for entry in services.diary_repository.recent(user_id, limit):
        activities.append({
            "type": "diario",
            "id": entry.id,
            "title": "Registro no Diário Quântico",
            "date": entry.created_at,
        })

    for conversation in services.conversation_repository.recent(user_id, limit):
        activities.append({
            "type": "luzia",
            "id": conversation.id,
            "title": conversation.title,
            "date": conversation.updated_at,
        })

    records, _ = services.practice_repository.list_records(
        user_id=user_id, page=1, limit=limit, event=PracticeEvent.COMPLETION
    )
    for record in records:
        activities.append({
            "type": "pratica",
            "id": record.id,
            "title": f"Prática: {record.practice_title}",
            "date": record.created_at,
        })

    activities.sort(key=lambda a: a["date"] or datetime.min, reverse=True)
    return {"data": activities[:limit]}


@router.get("/me/period", response_model=DataResponse[dict])
def my_period_stats(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    period: Period = Query(Period.DAILY),
    current_user: StoredUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_service_container),
):
    """Activity grouped by day, week or month (default: last 30 days)."""
    start, end = resolve_window(start_date, end_date)
    user_id = current_user.id

    return {
        "data": {
            "period": period.value,
            "start_date": start,
            "end_date": end,
            "diary": count_by_period(
                services.diary_repository.created_between(start, end, user_id), period
            ),
            "practices": sum_by_period(
                services.practice_repository.records_between(start, end, user_id), period
            ),
            "conversations": count_by_period(
                services.conversation_repository.created_between(start, end, user_id), period
            ),
        }
    }


@router.get("/me/milestones")
def my_milestones(
    current_user: StoredUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_service_container),
):
    user_id = current_user.id
    diary = services.diary_repository
    practices = services.practice_repository

    facts = MilestoneInputs(
        diary_total=diary.count(user_id),
        diary_streak=consecutive_days(
            diary.entry_dates(user_id), today=datetime.utcnow().date(), require_recent=True
        ),
        diary_dates=diary.first_created(user_id, 30),
        practice_total=practices.count_records(user_id, PracticeEvent.COMPLETION),
        practice_seconds=practices.total_duration(user_id),
        practice_dates=practices.first_records(user_id, 10),
        conversation_total=services.conversation_repository.count(user_id),
        conversation_dates=services.conversation_repository.first_created(user_id, 1),
        manifestation_total=services.manifestation_repository.count(user_id),
        manifestation_dates=services.manifestation_repository.first_created(user_id, 1),
    )
    milestones = [m.to_dict() for m in build_milestones(facts)]
    reached = [m for m in milestones if m["reached"]]

    return {
        "success": True,
        "count": len(reached),
        "total": len(milestones),
        "data": {"reached": reached, "all": milestones},
    }


# =============================================================================
# Admin analytics
# =============================================================================

@router.get("/admin/general", response_model=DataResponse[dict])
def admin_general(
    admin: StoredUser = Depends(require_admin),
    services: ServiceContainer = Depends(get_service_container),
):
    since = datetime.utcnow() - timedelta(days=ACTIVE_USER_WINDOW_DAYS)
    practices = services.practice_repository

    return {
        "data": {
            "users": {
                "total": services.user_repository.count(),
                "by_status": services.user_repository.count_by_status(),
                "active_last_7_days": practices.active_users_since(since),
            },
            "totals": {
                "diary_entries": services.diary_repository.count(),
                "manifestations": services.manifestation_repository.count(),
                "completed_practices": practices.count_records(event=PracticeEvent.COMPLETION),
                "conversations": services.conversation_repository.count(),
                "messages": services.conversation_repository.count_messages(),
            },
        }
    }


@router.get("/admin/usage", response_model=DataResponse[dict])
def admin_usage(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    period: Period = Query(Period.DAILY),
    admin: StoredUser = Depends(require_admin),
    services: ServiceContainer = Depends(get_service_container),
):
    """Period buckets across all users, registrations included."""
    start, end = resolve_window(start_date, end_date)
    logger.info(f"Usage report {start:%Y-%m-%d}..{end:%Y-%m-%d} ({period.value})")

    return {
        "data": {
            "period": period.value,
            "start_date": start,
            "end_date": end,
            "registrations": count_by_period(
                services.user_repository.created_between(start, end), period
            ),
            "diary": count_by_period(services.diary_repository.created_between(start, end), period),
            "practices": sum_by_period(services.practice_repository.records_between(start, end), period),
            "conversations": count_by_period(
                services.conversation_repository.created_between(start, end), period
            ),
        }
    }
