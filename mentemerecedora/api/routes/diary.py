"""
Diary API Routes

Owner-scoped CRUD for "Diário Quântico" entries plus streak statistics.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from mentemerecedora.api.dependencies import get_current_user, get_diary_repository
from mentemerecedora.api.middleware import NotFoundError, UnauthorizedError, ValidationError
from mentemerecedora.api.schemas import (
    DataResponse,
    DiaryEntryCreate,
    DiaryEntryResponse,
    DiaryEntryUpdate,
    DiaryStatsResponse,
    ListResponse,
    MessageResponse,
    Pagination,
)
from mentemerecedora.insights import consecutive_days, consistency_rate, emotional_progress
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/diario", tags=["diary"])

STATS_WINDOW_DAYS = 30


def get_owned_entry(entry_id: str, user: StoredUser, repo):
    """Entry owned by ``user``; 404 when missing, 401 when owned by someone else."""
    entry = repo.get(entry_id)
    if not entry:
        raise NotFoundError("Registro do diário", entry_id)
    if entry.user_id != user.id:
        logger.warning(f"User {user.id} tried to access diary entry {entry_id}")
        raise UnauthorizedError("Não autorizado a acessar este registro")
    return entry


@router.get("", response_model=ListResponse[DiaryEntryResponse])
def list_entries(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(30, ge=1, le=100),
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_diary_repository),
):
    """Caller's entries, most recent day first."""
    entries, total = repo.list_entries(
        current_user.id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return {
        "count": len(entries),
        "total": total,
        "pagination": Pagination.build(page, limit, total),
        "data": entries,
    }


@router.post("", response_model=DataResponse[DiaryEntryResponse], status_code=status.HTTP_201_CREATED)
def create_entry(
    payload: DiaryEntryCreate,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_diary_repository),
):
    entry_date = payload.date or datetime.utcnow().date()
    if repo.get_by_date(current_user.id, entry_date):
        raise ValidationError("Já existe um registro para esta data")

    entry = repo.create(
        current_user.id,
        entry_date,
        **payload.model_dump(exclude={"date"}),
    )
    return {"data": entry}


@router.get("/stats", response_model=DataResponse[DiaryStatsResponse])
def get_stats(
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_diary_repository),
):
    """Totals, streak, emotional progress and 30-day consistency."""
    since = datetime.utcnow().date() - timedelta(days=STATS_WINDOW_DAYS)
    last_30_days = repo.count(current_user.id, since=since)

    stats = DiaryStatsResponse(
        total_entries=repo.count(current_user.id),
        current_streak=consecutive_days(repo.entry_dates(current_user.id)),
        emotional_progress=emotional_progress(repo.recent_ratings(current_user.id, limit=6)),
        entries_last_30_days=last_30_days,
        consistency_rate=consistency_rate(last_30_days, STATS_WINDOW_DAYS),
    )
    return {"data": stats}


@router.get("/data/{entry_date}", response_model=DataResponse[DiaryEntryResponse])
def get_entry_by_date(
    entry_date: date,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_diary_repository),
):
    entry = repo.get_by_date(current_user.id, entry_date)
    if not entry:
        raise NotFoundError("Registro do diário", entry_date.isoformat())
    return {"data": entry}


@router.get("/{entry_id}", response_model=DataResponse[DiaryEntryResponse])
def get_entry(
    entry_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_diary_repository),
):
    return {"data": get_owned_entry(entry_id, current_user, repo)}


@router.put("/{entry_id}", response_model=DataResponse[DiaryEntryResponse])
def update_entry(
    entry_id: str,
    payload: DiaryEntryUpdate,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_diary_repository),
):
    entry = get_owned_entry(entry_id, current_user, repo)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)

    new_date = updates.get("date")
    if new_date and new_date != entry.date:
        clash = repo.get_by_date(current_user.id, new_date)
        if clash and clash.id != entry.id:
            raise ValidationError("Já existe um registro para esta data")

    updated = repo.update(entry_id, **updates)
    logger.info(f"Diary entry updated: {entry_id}")
    return {"data": updated}


@router.delete("/{entry_id}", response_model=MessageResponse)
def delete_entry(
    entry_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_diary_repository),
):
    get_owned_entry(entry_id, current_user, repo)
    repo.delete(entry_id)
    logger.info(f"Diary entry deleted: {entry_id}")
    return MessageResponse(message="Registro removido com sucesso", data={})
