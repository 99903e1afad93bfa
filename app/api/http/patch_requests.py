from fastapi import APIRouter, Depends

from app.core.auth import OperationContext, get_operation_context, get_public_operation_context
from app.domains.patches.schemas import (
    QueryPatchRequestsRequest, QueryPatchRequestsResponse,
    SubmitPatchRequestRequest, SubmitPatchRequestResponse,
    UpdateEditRequestRequest, UpdateEditRequestResponse
)
from app.domains.patches.services import PatchRequestService

router = APIRouter(prefix="/operations", tags=["patch requests"])


@router.post("/queryPatchRequests", response_model=QueryPatchRequestsResponse)
async def query_patch_requests(
    request: QueryPatchRequestsRequest,
    context: OperationContext = Depends(get_public_operation_context)
):
    """Запросы на изменение для набора композитов"""
    return await PatchRequestService(context).query(request.composite_ids)


@router.post("/updateEditRequest", response_model=UpdateEditRequestResponse, response_model_exclude_none=True)
async def update_edit_request(
    request: UpdateEditRequestRequest,
    context: OperationContext = Depends(get_operation_context)
):
    """Одобрение или отклонение запроса на изменение"""
    return await PatchRequestService(context).decide(request.id, request.action)


@router.post("/submitPatchRequest", response_model=SubmitPatchRequestResponse, response_model_exclude_none=True)
async def submit_patch_request(
    request: SubmitPatchRequestRequest,
    context: OperationContext = Depends(get_operation_context)
):
    """Предложение изменения композита на ревью"""
    return await PatchRequestService(context).submit(request)
