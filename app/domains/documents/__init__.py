from app.domains.documents.entities import Document
from app.domains.documents.schemas import (
    EditDocumentRequest, EditDocumentResponse,
    InsertDocumentRequest, InsertDocumentResponse
)

__all__ = [
    "Document",
    "EditDocumentRequest", "EditDocumentResponse",
    "InsertDocumentRequest", "InsertDocumentResponse"
]
