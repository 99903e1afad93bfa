from app.db.repositories.user_repository import UserRepository
from app.db.repositories.document_repository import DocumentRepository
from app.db.repositories.composite_repository import CompositeRepository, CompositeRelationshipRepository
from app.db.repositories.patch_request_repository import PatchRequestRepository, OperationRepository

__all__ = [
    "UserRepository",
    "DocumentRepository",
    "CompositeRepository",
    "CompositeRelationshipRepository",
    "PatchRequestRepository",
    "OperationRepository"
]
