import logging
from typing import Any

from app.core.auth import OperationContext
from app.core.exceptions import AuthorizationError, NotFoundError
from app.db.repositories.composite_repository import CompositeRepository
from app.db.repositories.document_repository import DocumentRepository
from app.domains.composites.entities import RelationshipType
from app.domains.composites.services import VariationService
from app.domains.documents.entities import Document
from app.domains.documents.schemas import (
    EditDocumentRequest, EditDocumentResponse,
    InsertDocumentRequest, InsertDocumentResponse
)
from app.domains.documents.validation import SchemaValidator

logger = logging.getLogger(__name__)


class DocumentService:
    """Сервис для работы с документами"""

    def __init__(self, context: OperationContext):
        self.context = context
        self.session = context.session
        self.document_repository = DocumentRepository(self.session)
        self.composite_repository = CompositeRepository(self.session)
        self.validator = SchemaValidator(self.document_repository)

    async def edit_document(self, request: EditDocumentRequest) -> EditDocumentResponse:
        """Правка документа.

        Автор правит активный документ на месте, архивный - через новую
        активную копию. Правка не-автора превращается в вариацию композита,
        исходный документ при этом не меняется.
        """
        user_id = self.context.user_id
        logger.info(f"[editDB] document={request.id} user={user_id}")

        try:
            document = await self.document_repository.get_any(request.id)
            if document is None:
                raise NotFoundError(f"Document {request.id} not found")

            outcome = await self.validator.validate(request.content, document.schema)
            if not outcome.valid:
                logger.info(f"[editDB] Validation failed for document {document.id}: {len(outcome.errors)} errors")
                return EditDocumentResponse(
                    success=False,
                    error="Validation failed",
                    details=[issue.to_dict() for issue in outcome.errors]
                )

            if not document.is_authored_by(user_id):
                return await self._fork(document, request.content)

            if document.archived:
                updated = await self._edit_archived(document, request.content)
            else:
                document.apply_update(request.content)
                updated = await self.document_repository.update(document)
                await self.session.commit()
        except AuthorizationError:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"[editDB] Unexpected error: {e}")
            return EditDocumentResponse(success=False, error="Unexpected error", details=str(e))

        logger.info(f"[editDB] document {updated.id} updated to version {updated.version}")
        return EditDocumentResponse(success=True, updated_data=updated.to_dict())

    async def _fork(self, document: Document, content: Any) -> EditDocumentResponse:
        """Правка не-автора: новая вариация композита документа"""
        composites = await self.composite_repository.get_by_compose_id(document.id)
        if not composites:
            raise NotFoundError(f"No composite found for document {document.id}")
        if len(composites) > 1:
            logger.warning(f"[editDB] {len(composites)} composites point to document {document.id}, using the first")

        result = await VariationService(self.context).create_variation(
            source=composites[0],
            proposed_json=content,
            relationship_type=RelationshipType.EDIT_VARIATION
        )

        return EditDocumentResponse(
            success=True,
            created_variation=True,
            new_composite_id=result.composite.id,
            patch_request_id=result.patch_request_id,
            message="Created a variation since you are not the author of this content",
            warnings=result.warnings
        )

    async def _edit_archived(self, archived: Document, content: Any) -> Document:
        """Правка архивного документа через новую активную копию"""
        revived = await self.document_repository.create(archived.revive())
        revived.apply_update(content)
        updated = await self.document_repository.update(revived)

        repointed = await self.composite_repository.repoint(archived.id, updated.id)
        await self.session.commit()

        logger.info(
            f"[editDB] archived document {archived.id} revived as {updated.id}, "
            f"{repointed} composites repointed"
        )
        return updated

    async def insert_document(self, request: InsertDocumentRequest) -> InsertDocumentResponse:
        """Вставка нового документа; без схемы документ считается схемой"""
        schema_id = request.schema_id or self.validator.meta_schema_id
        logger.info(f"[insertDB] schema={schema_id} user={self.context.user_id}")

        try:
            outcome = await self.validator.validate(request.content, schema_id)
            if not outcome.valid:
                return InsertDocumentResponse(
                    success=False,
                    error="Validation failed",
                    details=[issue.to_dict() for issue in outcome.errors]
                )

            document = await self.document_repository.create(Document.create_document(
                json=request.content,
                author=self.context.user_id,
                schema=schema_id
            ))
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"[insertDB] Unexpected error: {e}")
            return InsertDocumentResponse(success=False, error="Unexpected error", details=str(e))

        return InsertDocumentResponse(success=True, inserted_data=document.to_dict())
