from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from gatepass.schemas.gatepass import (
    CancelIn,
    ExecutiveOfficerUpdate,
    HistoryOut,
    ItemUpdate,
    RequestCreate,
    RequestOut,
    StatusOut,
    TransitionIn,
    TransitionOut,
)
from gatepass.security.dependencies import get_menu_resolver, get_orchestrator, get_requester
from gatepass.workflow import LifecycleOrchestrator, MenuResolver
from gatepass.workflow.context import Requester

router = APIRouter(prefix="/requests", tags=["requests"])


@router.post("", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def create_request(
    body: RequestCreate,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    menus: MenuResolver = Depends(get_menu_resolver),
) -> RequestOut:
    record = orchestrator.create_request(requester, body.to_draft())
    return RequestOut.from_record(record, menus.controls_for(requester, record))


# Declared before "/{reference_number}" so "mine" is not taken as a reference.
@router.get("/mine", response_model=list[RequestOut])
def my_requests(
    include_hidden: bool = Query(False),
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    menus: MenuResolver = Depends(get_menu_resolver),
) -> list[RequestOut]:
    records = orchestrator.list_requests_for_actor(requester.service_no, include_hidden=include_hidden)
    return [RequestOut.from_record(r, menus.controls_for(requester, r)) for r in records]


@router.get("/{reference_number}", response_model=RequestOut)
def get_request(
    reference_number: str,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    menus: MenuResolver = Depends(get_menu_resolver),
) -> RequestOut:
    record = orchestrator.get_request(reference_number, requester)
    return RequestOut.from_record(record, menus.controls_for(requester, record))


@router.get("/{reference_number}/history", response_model=list[HistoryOut])
def request_history(
    reference_number: str,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> list[HistoryOut]:
    return [HistoryOut.model_validate(change) for change in orchestrator.history(reference_number, requester)]


@router.patch("/{reference_number}/items/{serial_no}", response_model=RequestOut)
def update_item(
    reference_number: str,
    serial_no: str,
    body: ItemUpdate,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    menus: MenuResolver = Depends(get_menu_resolver),
) -> RequestOut:
    record = orchestrator.update_item(requester, reference_number, serial_no, body.model_dump(exclude_unset=True))
    return RequestOut.from_record(record, menus.controls_for(requester, record))


@router.put("/{reference_number}/executive-officer", response_model=RequestOut)
def reassign_executive_officer(
    reference_number: str,
    body: ExecutiveOfficerUpdate,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
    menus: MenuResolver = Depends(get_menu_resolver),
) -> RequestOut:
    record = orchestrator.reassign_executive_officer(requester, reference_number, body.service_no)
    return RequestOut.from_record(record, menus.controls_for(requester, record))


@router.post("/{reference_number}/transitions", response_model=TransitionOut)
def transition(
    reference_number: str,
    body: TransitionIn,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> TransitionOut:
    new_status = orchestrator.transition(
        requester,
        reference_number,
        body.action,
        stage=body.stage,
        comment=body.comment,
        expected_status=body.expected_status,
    )
    return TransitionOut(reference_number=reference_number, status=StatusOut.of(new_status))


@router.post("/{reference_number}/cancel", response_model=TransitionOut)
def cancel(
    reference_number: str,
    body: CancelIn | None = None,
    requester: Requester = Depends(get_requester),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> TransitionOut:
    body = body or CancelIn()
    new_status = orchestrator.cancel(
        requester,
        reference_number,
        comment=body.comment,
        expected_status=body.expected_status,
    )
    return TransitionOut(reference_number=reference_number, status=StatusOut.of(new_status))
