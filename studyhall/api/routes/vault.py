"""
studyhall.api.routes.vault — Personal study vault
==================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from studyhall.api.deps import get_actor, get_engine
from studyhall.database.models import Profile, StudyVaultItem
from studyhall.services import library_service

router = APIRouter(prefix="/vault", tags=["vault"])


class VaultItemCreate(BaseModel):
    title: str
    file_url: str | None = None
    link_url: str | None = None


def _vault_dict(v: StudyVaultItem) -> dict:
    return {
        "id": v.id,
        "user_id": v.user_id,
        "title": v.title,
        "file_url": v.file_url,
        "link_url": v.link_url,
        "created_at": v.created_at.isoformat() if v.created_at else None,
    }


@router.get("")
def list_my_vault(actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    return [_vault_dict(v) for v in library_service.list_vault_items(engine, actor.user_id)]


@router.post("", status_code=201)
def create_vault_item(
    body: VaultItemCreate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    row = library_service.create_vault_item(
        engine,
        actor_id=actor.user_id,
        title=body.title,
        file_url=body.file_url,
        link_url=body.link_url,
    )
    return _vault_dict(row)


@router.delete("/{item_id}", status_code=204)
def delete_vault_item(
    item_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    library_service.delete_vault_item(engine, item_id=item_id, actor_id=actor.user_id)
    return Response(status_code=204)
