from fastapi import APIRouter, Depends

from app.core.auth import OperationContext, get_operation_context
from app.domains.documents.schemas import (
    EditDocumentRequest, EditDocumentResponse,
    InsertDocumentRequest, InsertDocumentResponse
)
from app.domains.documents.services import DocumentService

router = APIRouter(prefix="/operations", tags=["documents"])


@router.post("/editDB", response_model=EditDocumentResponse, response_model_exclude_none=True)
async def edit_db(
    request: EditDocumentRequest,
    context: OperationContext = Depends(get_operation_context)
):
    """Правка документа: на месте для автора, вариация для остальных"""
    return await DocumentService(context).edit_document(request)


@router.post("/insertDB", response_model=InsertDocumentResponse, response_model_exclude_none=True)
async def insert_db(
    request: InsertDocumentRequest,
    context: OperationContext = Depends(get_operation_context)
):
    """Вставка нового документа"""
    return await DocumentService(context).insert_document(request)
