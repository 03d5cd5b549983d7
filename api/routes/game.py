"""Game API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from api.schemas import (
    ActionRequest,
    RoundLogResponse,
    RoundStateResponse,
    StartRequest,
)
from api.session import get_current_user
from api.store import get_round_store
from config import config
from core.game.service import RoundService

router = APIRouter()


async def get_round_service() -> RoundService:
    """Build the round service on top of the configured store."""
    return RoundService(await get_round_store())


UserId = Annotated[str, Depends(get_current_user)]
Service = Annotated[RoundService, Depends(get_round_service)]


def _no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"


@router.get("/state")
async def get_state(
    user_id: UserId,
    service: Service,
    response: Response,
    round_id: Annotated[str | None, Query(alias="roundId")] = None,
) -> RoundStateResponse:
    """Get a round's state, or the latest round's when no id is given."""
    _no_store(response)
    snapshot = await service.status(user_id, round_id)
    return RoundStateResponse.from_snapshot(snapshot)


@router.post("/start")
async def start_round(
    user_id: UserId,
    service: Service,
    response: Response,
    request: StartRequest | None = None,
) -> RoundStateResponse:
    """Start a round. Returns the playing round unchanged if there is one."""
    _no_store(response)
    deal_one = config.game.deal_one
    if request is not None and request.deal_one is not None:
        deal_one = request.deal_one
    snapshot = await service.start(user_id, deal_one=deal_one)
    return RoundStateResponse.from_snapshot(snapshot)


@router.post("/hit")
async def hit(
    request: ActionRequest,
    user_id: UserId,
    service: Service,
    response: Response,
) -> RoundStateResponse:
    """Draw one card."""
    _no_store(response)
    snapshot = await service.hit(user_id, request.round_id, request.expected_nonce)
    return RoundStateResponse.from_snapshot(snapshot)


@router.post("/stand")
async def stand(
    request: ActionRequest,
    user_id: UserId,
    service: Service,
    response: Response,
) -> RoundStateResponse:
    """Finish the round and collect its points."""
    _no_store(response)
    snapshot = await service.stand(user_id, request.round_id, request.expected_nonce)
    return RoundStateResponse.from_snapshot(snapshot)


@router.get("/rounds/{round_id}/log")
async def round_log(
    round_id: str,
    user_id: UserId,
    service: Service,
    response: Response,
) -> list[RoundLogResponse]:
    """Audit trail of one of the caller's rounds."""
    _no_store(response)
    entries = await service.history(user_id, round_id)
    return [RoundLogResponse.from_entry(entry) for entry in entries]
