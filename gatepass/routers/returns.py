from __future__ import annotations

from fastapi import APIRouter, Depends

from gatepass.schemas.gatepass import ItemOut, ReturnIn, ReturnOut
from gatepass.security.dependencies import get_requester, get_returns
from gatepass.workflow import ItemReturnSubworkflow
from gatepass.workflow.context import Requester

router = APIRouter(prefix="/requests", tags=["returns"])


@router.get("/{reference_number}/returns", response_model=list[ItemOut])
def returnable_items(
    reference_number: str,
    requester: Requester = Depends(get_requester),
    returns: ItemReturnSubworkflow = Depends(get_returns),
) -> list[ItemOut]:
    return [ItemOut.model_validate(item) for item in returns.returnable_items(reference_number, requester)]


@router.post("/{reference_number}/returns", response_model=ReturnOut)
def mark_returned(
    reference_number: str,
    body: ReturnIn,
    requester: Requester = Depends(get_requester),
    returns: ItemReturnSubworkflow = Depends(get_returns),
) -> ReturnOut:
    marked = returns.mark_returned(requester, reference_number, body.serial_numbers, remarks=body.remarks)
    return ReturnOut(
        reference_number=reference_number,
        marked=marked,
        items=[ItemOut.model_validate(item) for item in returns.returnable_items(reference_number)],
    )
