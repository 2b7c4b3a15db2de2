from typing import Any

from fastapi import APIRouter, Depends, Response

from app.api.v1.endpoints.deletion_requests import get_deletion_workflow, respond
from app.schemas.result import ActionResult
from app.services.deletion_workflow import DeletionWorkflow

router = APIRouter()


@router.delete("/{asset_id}", response_model=ActionResult[None])
async def delete_asset(
    asset_id: int,
    response: Response,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """
    Delete an asset directly, bypassing review.

    Admins only. A pending deletion request on the asset is auto-approved
    in the same transaction.
    """
    return respond(workflow.delete_asset_direct(asset_id), response)
