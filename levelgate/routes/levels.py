# levelgate/routes/levels.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from levelgate.access.store import AccessStore, get_store
from levelgate.schemas.level import LevelModel

router = APIRouter()


@router.get("/levels", response_model=List[LevelModel])
async def list_levels(store: AccessStore = Depends(get_store)):
    return [LevelModel.model_validate(level) for level in await store.list_levels()]
