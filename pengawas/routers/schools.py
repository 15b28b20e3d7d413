from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pengawas.repositories.json_storage import JSONRecordStore
from pengawas.routers.deps import current_user_id, get_store

router = APIRouter(prefix="/api/schools", tags=["schools"])


class SchoolIn(BaseModel):
    name: str
    address: str
    contact: str
    principalName: Optional[str] = None
    principalNip: Optional[str] = None


@router.get("")
def list_schools(user_id: str = Depends(current_user_id), store: JSONRecordStore = Depends(get_store)):
    return store.get_schools(user_id)


@router.post("")
def create_school(
    payload: SchoolIn,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    return store.create_school({**payload.model_dump(), "userId": user_id})


@router.delete("/{school_id}")
def delete_school(
    school_id: str,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    # data supervisi tetap tersimpan
    store.delete_school(school_id, user_id=user_id)
    return {"success": True}
