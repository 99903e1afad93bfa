from app.db.models.user import User
from app.db.models.document import Document, ArchivedDocument
from app.db.models.composite import Composite, CompositeRelationship
from app.db.models.patch_request import PatchRequest, DocumentOperation, PatchStatus, OperationType

__all__ = [
    "User",
    "Document",
    "ArchivedDocument",
    "Composite",
    "CompositeRelationship",
    "PatchRequest",
    "DocumentOperation",
    "PatchStatus",
    "OperationType"
]
