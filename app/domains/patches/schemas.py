from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
import uuid


class QueryPatchRequestsRequest(BaseModel):
    composite_ids: List[uuid.UUID] = Field(..., alias="compositeIds")

    model_config = ConfigDict(populate_by_name=True)


class AuthorRef(BaseModel):
    id: str = ""
    name: str = "Unknown"


class VersionView(BaseModel):
    """Состояние документа до или после изменения"""
    content: Optional[Any] = None
    schema_: Optional[Any] = Field(None, alias="schema")
    instance: Optional[Any] = None
    version: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class OperationView(BaseModel):
    id: uuid.UUID
    operation_type: str
    path: List[str]
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    created_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    patch_request_id: uuid.UUID


class PatchRequestView(BaseModel):
    """Запрос на изменение в виде, пригодном для ревью"""
    id: uuid.UUID
    title: str
    description: str
    created_at: datetime
    updated_at: datetime
    author: AuthorRef
    composite_author: str
    changes: VersionView
    previous_version: VersionView = Field(..., alias="previousVersion")
    status: str
    composite_id: uuid.UUID
    operations: List[OperationView] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class QueryPatchRequestsResponse(BaseModel):
    patch_requests: List[PatchRequestView]


class UpdateEditRequestRequest(BaseModel):
    id: uuid.UUID
    action: Literal["approve", "reject"]


class UpdateEditRequestResponse(BaseModel):
    success: bool
    patch_request: Optional[Dict[str, Any]] = Field(None, alias="patchRequest")
    message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class SubmitPatchRequestRequest(BaseModel):
    """Предложение изменения композита без создания вариации"""
    composite_id: uuid.UUID = Field(..., alias="compositeId")
    content: Any = Field(..., alias="json")
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class SubmitPatchRequestResponse(BaseModel):
    success: bool
    patch_request_id: Optional[uuid.UUID] = Field(None, alias="patchRequestId")
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None
    warnings: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
