from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pengawas.repositories.json_storage import JSONRecordStore
from pengawas.routers.deps import current_user_id, get_store

router = APIRouter(prefix="/api/supervisions", tags=["supervisions"])


class SupervisionIn(BaseModel):
    school: Optional[str] = None
    schoolId: Optional[str] = None
    type: Literal["Akademik", "Manajerial"]
    date: Optional[str] = None
    findings: str
    recommendations: Optional[str] = None
    photo1: Optional[str] = None
    photo2: Optional[str] = None


@router.get("")
def list_supervisions(user_id: str = Depends(current_user_id), store: JSONRecordStore = Depends(get_store)):
    return store.get_supervisions(user_id)


@router.get("/school/{school_id}")
def list_supervisions_by_school(
    school_id: str,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    return store.get_supervisions_by_school(school_id, user_id)


@router.post("")
def create_supervision(
    payload: SupervisionIn,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    return store.create_supervision({**payload.model_dump(), "userId": user_id})


@router.delete("/{supervision_id}")
def delete_supervision(
    supervision_id: str,
    user_id: str = Depends(current_user_id),
    store: JSONRecordStore = Depends(get_store),
):
    store.delete_supervision(supervision_id, user_id=user_id)
    return {"success": True}
