"""Note create / fetch / delete endpoints."""

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.base import NoteStorage
from app.adapters.sql import SqlNoteStorage
from app.database import get_db
from app.schemas.note import DeleteResult, NoteCreate, NoteCreated, NoteData
from app.services import note_service

router = APIRouter()


async def get_storage(db: AsyncSession = Depends(get_db)) -> NoteStorage:
    return SqlNoteStorage(db)


@router.post("", response_model=NoteCreated)
async def create_note(data: NoteCreate, storage: NoteStorage = Depends(get_storage)):
    return await note_service.create_note(storage, data)


@router.get("/{note_id}/data", response_model=NoteData)
async def get_note_data(note_id: str, storage: NoteStorage = Depends(get_storage)):
    return await note_service.retrieve_note(storage, note_id)


@router.delete("/{note_id}", response_model=DeleteResult)
async def delete_note(
    note_id: str,
    x_delete_token: str | None = Header(default=None),
    storage: NoteStorage = Depends(get_storage),
):
    return await note_service.delete_note(storage, note_id, x_delete_token)
