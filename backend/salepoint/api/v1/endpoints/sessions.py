from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from backend.salepoint.api.deps import get_engine, get_terminal, http_error
from backend.salepoint.core.errors import SaleError
from backend.salepoint.schemas.sale import ParkedSale
from backend.salepoint.schemas.session import ActionRequest, SessionOut
from backend.salepoint.services.session import SaleEngine
from backend.salepoint.services.terminal import Terminal

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Sale sessions ───────────────────────────────────────────────────────────


@router.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def open_session(
    terminal: Terminal = Depends(get_terminal),
    engine: SaleEngine = Depends(get_engine),
) -> SessionOut:
    return engine.view(terminal.open_session())


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(
    session_id: UUID,
    terminal: Terminal = Depends(get_terminal),
    engine: SaleEngine = Depends(get_engine),
) -> SessionOut:
    try:
        return engine.view(terminal.get(session_id))
    except SaleError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/actions", response_model=SessionOut)
def apply_action(
    session_id: UUID,
    payload: ActionRequest,
    terminal: Terminal = Depends(get_terminal),
    engine: SaleEngine = Depends(get_engine),
) -> SessionOut:
    """Apply one named action (add_item, add_payment, park, commit, ...)."""
    action = payload.root
    try:
        session = terminal.dispatch(session_id, action, engine)
    except SaleError as e:
        logger.info("session=%s %s rejected: %s", session_id, action.type, e.code)
        raise http_error(e)
    return engine.view(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def close_session(
    session_id: UUID,
    terminal: Terminal = Depends(get_terminal),
) -> Response:
    try:
        terminal.close_session(session_id)
    except SaleError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Parked sales ────────────────────────────────────────────────────────────


@router.get("/parked-sales", response_model=list[ParkedSale])
def list_parked_sales(terminal: Terminal = Depends(get_terminal)) -> list[ParkedSale]:
    return terminal.parked.list()


@router.get("/parked-sales/{parked_id}", response_model=ParkedSale)
def get_parked_sale(
    parked_id: UUID,
    terminal: Terminal = Depends(get_terminal),
) -> ParkedSale:
    try:
        return terminal.parked.get(parked_id)
    except SaleError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
