from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
import uuid


class EditDocumentRequest(BaseModel):
    """Схема запроса editDB"""
    id: uuid.UUID
    content: Any = Field(..., alias="json")

    model_config = ConfigDict(populate_by_name=True)


class EditDocumentResponse(BaseModel):
    """Ответ editDB: обновление на месте, вариация или ошибка"""
    success: bool
    updated_data: Optional[Dict[str, Any]] = Field(None, alias="updatedData")
    created_variation: Optional[bool] = Field(None, alias="createdVariation")
    new_composite_id: Optional[uuid.UUID] = Field(None, alias="newCompositeId")
    patch_request_id: Optional[uuid.UUID] = Field(None, alias="patchRequestId")
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None
    warnings: Optional[List[str]] = None

    model_config = ConfigDict(populate_by_name=True)


class InsertDocumentRequest(BaseModel):
    """Схема запроса insertDB; без schema вставляется документ-схема"""
    content: Any = Field(..., alias="json")
    schema_id: Optional[uuid.UUID] = Field(None, alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class InsertDocumentResponse(BaseModel):
    success: bool
    inserted_data: Optional[Dict[str, Any]] = Field(None, alias="insertedData")
    error: Optional[str] = None
    details: Optional[Any] = None

    model_config = ConfigDict(populate_by_name=True)
