from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.core.auth import OperationContext, get_operation_context, get_public_operation_context
from app.domains.composites.merge import MergeResolver, MergeService, get_merge_resolver
from app.domains.composites.schemas import (
    CreateCompositeRequest, CreateCompositeResponse,
    CreateVariationRequest, CreateVariationResponse,
    FindMergeCandidatesRequest, FindMergeCandidatesResponse,
    ThreeWayMergeRequest, ToggleArchiveRequest, ToggleArchiveResponse
)
from app.domains.composites.services import CompositeService, VariationService

router = APIRouter(prefix="/operations", tags=["composites"])


@router.post("/createComposite", response_model=CreateCompositeResponse, response_model_exclude_none=True)
async def create_composite(
    request: CreateCompositeRequest,
    context: OperationContext = Depends(get_operation_context)
):
    """Создание композита с первым документом"""
    return await CompositeService(context).create_composite(request)


@router.post("/createCompositeVariation", response_model=CreateVariationResponse)
async def create_composite_variation(
    request: CreateVariationRequest,
    context: OperationContext = Depends(get_operation_context)
):
    """Явное создание вариации композита"""
    return await VariationService(context).create_composite_variation(request)


@router.post("/threeWayMerge")
async def three_way_merge(
    request: ThreeWayMergeRequest,
    context: OperationContext = Depends(get_operation_context),
    resolver: MergeResolver = Depends(get_merge_resolver)
) -> Dict[str, Any]:
    """Трехстороннее слияние; результат резолвера без изменений"""
    return await MergeService(context, resolver).three_way_merge(
        request.source_composite_id,
        request.target_composite_id,
        request.is_drag_and_drop
    )


@router.post("/findMergeCandidates", response_model=FindMergeCandidatesResponse)
async def find_merge_candidates(
    request: FindMergeCandidatesRequest,
    context: OperationContext = Depends(get_public_operation_context)
):
    """Композиты, с которыми можно выполнить слияние"""
    return await MergeService(context).find_candidates(request.composite_id)


@router.post("/toggleCompositeArchive", response_model=ToggleArchiveResponse, response_model_exclude_none=True)
async def toggle_composite_archive(
    request: ToggleArchiveRequest,
    context: OperationContext = Depends(get_operation_context)
):
    """Архивация и восстановление композита автором"""
    return await CompositeService(context).toggle_archive(request.composite_id, request.archive)
