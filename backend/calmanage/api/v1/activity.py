from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlmodel import select

from calmanage.api.deps import get_current_user
from calmanage.db import SessionDep
from calmanage.models import Activity, User
from calmanage.schemas import ActivityRead

router = APIRouter()


@router.get("/", response_model=List[ActivityRead], summary="List own activity")
def list_activity(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
    limit: int = Query(default=50, ge=1, le=200),
) -> List[Activity]:
    return session.exec(
        select(Activity)
        .where(Activity.user_id == current_user.id)
        .order_by(Activity.created_at.desc())
        .limit(limit)
    ).all()
