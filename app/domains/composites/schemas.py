from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid


class CreateCompositeRequest(BaseModel):
    """Схема для создания композита вместе с его первым документом"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    content: Any = Field(..., alias="json")
    schema_id: Optional[uuid.UUID] = Field(None, alias="schema")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class CreateCompositeResponse(BaseModel):
    success: bool
    composite: Optional[Dict[str, Any]] = None
    document: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    details: Optional[Any] = None


class CreateVariationRequest(BaseModel):
    """Схема запроса createCompositeVariation"""
    source_composite_id: uuid.UUID = Field(..., alias="sourceCompositeId")
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    variation_type: str = Field("variation", alias="variationType")
    apply_pending_changes: bool = Field(False, alias="applyPendingChanges")
    pending_edit_request_id: Optional[uuid.UUID] = Field(None, alias="pendingEditRequestId")

    model_config = ConfigDict(populate_by_name=True)


class CreateVariationResponse(BaseModel):
    success: bool
    message: str
    composite: Optional[Dict[str, Any]] = None
    patch_request_id: Optional[uuid.UUID] = Field(None, alias="patchRequestId")
    warnings: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class ThreeWayMergeRequest(BaseModel):
    source_composite_id: uuid.UUID = Field(..., alias="sourceCompositeId")
    target_composite_id: uuid.UUID = Field(..., alias="targetCompositeId")
    is_drag_and_drop: bool = Field(False, alias="isDragAndDrop")

    model_config = ConfigDict(populate_by_name=True)


class FindMergeCandidatesRequest(BaseModel):
    composite_id: uuid.UUID = Field(..., alias="compositeId")

    model_config = ConfigDict(populate_by_name=True)


class MergeCandidate(BaseModel):
    composite_id: uuid.UUID
    title: str
    relationship_type: Optional[str] = None
    last_updated: datetime
    author_id: uuid.UUID
    author_name: str


class FindMergeCandidatesResponse(BaseModel):
    success: bool
    candidates: List[MergeCandidate] = Field(default_factory=list)
    error: Optional[str] = None


class ToggleArchiveRequest(BaseModel):
    composite_id: uuid.UUID = Field(..., alias="compositeId")
    archive: bool

    model_config = ConfigDict(populate_by_name=True)


class ToggleArchiveResponse(BaseModel):
    success: bool
    composite: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None
