from __future__ import annotations

from fastapi import APIRouter, Depends

from gatepass.schemas.gatepass import RequestOut
from gatepass.security.dependencies import get_menu_resolver, get_orchestrator, get_requester
from gatepass.workflow import LifecycleOrchestrator, MenuResolver
from gatepass.workflow.context import Requester

router = APIRouter(prefix="/queues", tags=["queues"])


@router.get("/{stage}", response_model=list[RequestOut])
def pending_queue(
    stage: str,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    menus: MenuResolver = Depends(get_menu_resolver),
) -> list[RequestOut]:
    # Unknown stage names surface as InvalidRequest (422).
    records = orchestrator.pending_queue(requester, stage)
    return [RequestOut.from_record(r, menus.controls_for(requester, r)) for r in records]
