from typing import List

from fastapi import APIRouter, Query

from nutriscan.core.loading_messages import LOADING_MESSAGES, pick_loading_message

router = APIRouter(prefix="/api", tags=["loading"])


@router.get("/loading-message")
def loading_message(step: int = Query(1, ge=1)):
    """
    Next loading message for a client session.
    The client increments `step` itself and resets it for a new scan.
    """
    return {"step": step, "message": pick_loading_message(step)}


@router.get("/loading-messages")
def loading_messages() -> List[str]:
    return LOADING_MESSAGES
