from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pengawas.repositories.json_storage import JSONRecordStore
from pengawas.routers.deps import current_user_id, get_store

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

NON_NULLABLE = ("title", "category", "date", "completed")


class TaskIn(BaseModel):
    title: str
    category: str
    date: Optional[str] = None
    description: Optional[str] = None
    photo1: Optional[str] = None
    photo2: Optional[str] = None
    completed: bool = False


class TaskPatch(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None
    photo1: Optional[str] = None
    photo2: Optional[str] = None
    completed: Optional[bool] = None


@router.get("")
def list_tasks(user_id: str = Depends(current_user_id), store: JSONRecordStore = Depends(get_store)):
    return store.get_tasks(user_id)


@router.post("")
def create_task(
    payload: TaskIn,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    return store.create_task({**payload.model_dump(), "userId": user_id})


@router.patch("/{task_id}")
def update_task(
    task_id: str,
    payload: TaskPatch,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    changes = payload.model_dump(exclude_unset=True)
    # null on a non-nullable field means "leave as is"
    for field in NON_NULLABLE:
        if field in changes and changes[field] is None:
            del changes[field]
    return store.update_task(task_id, changes, user_id=user_id)


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    store.delete_task(task_id, user_id=user_id)
    return {"success": True}
