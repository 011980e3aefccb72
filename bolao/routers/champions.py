from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_admin, require_user
from ..models.user import User
from ..services.champions import (
    ChampionCreate,
    ChampionUpdate,
    PickCreate,
    PickUpdate,
    compute_champion_status,
    create_champion,
    create_pick,
    get_champion,
    list_champion_picks,
    update_champion,
    update_pick,
)

router = APIRouter(prefix="/api/champions", tags=["champions"])


def champion_to_dict(champion) -> dict:
    return {
        "id": champion.id,
        "pool_id": champion.pool_id,
        "name": champion.name,
        "description": champion.description,
        "deadline": champion.deadline,
        "points": champion.points,
        "result_team_id": champion.result_team_id,
        "decided_at": champion.decided_at,
        "status": compute_champion_status(champion),
    }


# Pick routes come first so "/picks" is not read as a champion id
@router.post("/picks", status_code=201)
async def submit_pick(
    data: PickCreate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return create_pick(db, current_user.id, data, is_admin=current_user.is_admin)


@router.patch("/picks/{pick_id}")
async def edit_pick(
    pick_id: int,
    data: PickUpdate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return update_pick(db, pick_id, current_user.id, data, is_admin=current_user.is_admin)


@router.post("", status_code=201)
async def add_champion(
    data: ChampionCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    return champion_to_dict(create_champion(db, data))


@router.get("/{champion_id}")
async def read_champion(
    champion_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return champion_to_dict(get_champion(db, champion_id))


@router.patch("/{champion_id}")
async def edit_champion(
    champion_id: int,
    data: ChampionUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    """Setting, clearing or reopening a result rescores every pick."""
    return champion_to_dict(update_champion(db, champion_id, data))


@router.get("/{champion_id}/picks")
async def read_champion_picks(
    champion_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return list_champion_picks(db, champion_id, current_user.id, current_user.is_admin)
