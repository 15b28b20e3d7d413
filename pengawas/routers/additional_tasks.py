from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pengawas.repositories.json_storage import JSONRecordStore
from pengawas.routers.deps import current_user_id, get_store

router = APIRouter(prefix="/api/additional-tasks", tags=["additional-tasks"])


class AdditionalTaskIn(BaseModel):
    name: str
    date: Optional[str] = None
    location: str
    organizer: str
    description: Optional[str] = None
    photo1: Optional[str] = None
    photo2: Optional[str] = None


@router.get("")
def list_additional_tasks(user_id: str = Depends(current_user_id), store: JSONRecordStore = Depends(get_store)):
    return store.get_additional_tasks(user_id)


@router.post("")
def create_additional_task(
    payload: AdditionalTaskIn,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    return store.create_additional_task({**payload.model_dump(), "userId": user_id})


@router.delete("/{task_id}")
def delete_additional_task(
    task_id: str,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    store.delete_additional_task(task_id, user_id=user_id)
    return {"success": True}
