import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional

from app.core.auth import OperationContext
from app.core.exceptions import AuthorizationError, NotFoundError
from app.db.repositories.composite_repository import CompositeRepository, CompositeRelationshipRepository
from app.db.repositories.document_repository import DocumentRepository
from app.db.repositories.patch_request_repository import PatchRequestRepository
from app.domains.composites.entities import Composite, CompositeRelationship, RelationshipType
from app.domains.composites.schemas import (
    CreateCompositeRequest, CreateCompositeResponse,
    CreateVariationRequest, CreateVariationResponse,
    ToggleArchiveResponse
)
from app.domains.documents.entities import Document
from app.domains.documents.validation import SchemaValidator
from app.domains.patches.entities import PatchStatus
from app.domains.patches.services import PatchRequestService

logger = logging.getLogger(__name__)


@dataclass
class VariationResult:
    """Итог создания вариации; warnings - сбои необязательных шагов"""
    composite: Composite
    document: Document
    relationship: CompositeRelationship
    patch_request_id: Optional[uuid.UUID] = None
    warnings: List[str] = field(default_factory=list)


class VariationService:
    """Создание вариаций (ответвлений) композитов"""

    def __init__(self, context: OperationContext):
        self.context = context
        self.session = context.session
        self.document_repository = DocumentRepository(self.session)
        self.composite_repository = CompositeRepository(self.session)
        self.relationship_repository = CompositeRelationshipRepository(self.session)
        self.patch_request_repository = PatchRequestRepository(self.session)
        self.patch_service = PatchRequestService(context)

    async def resolve_source(self, composite_or_document_id: uuid.UUID) -> Composite:
        """Поиск композита по id, затем по compose_id"""
        composite = await self.composite_repository.get_by_id(composite_or_document_id)
        if composite is not None:
            return composite

        composites = await self.composite_repository.get_by_compose_id(composite_or_document_id)
        if not composites:
            raise NotFoundError(f"No composite found with id or compose_id: {composite_or_document_id}")
        return composites[0]

    async def pending_content(self, patch_request_id: uuid.UUID) -> Any:
        """Содержимое документа "после" из запроса на изменение"""
        patch_request = await self.patch_request_repository.get_by_id(patch_request_id)
        if patch_request is None:
            raise NotFoundError(f"No edit request found with id: {patch_request_id}")

        new_version = await self.document_repository.get_any(patch_request.new_version_id)
        if new_version is None:
            raise NotFoundError(f"No content found for new version: {patch_request.new_version_id}")
        return new_version.json

    async def create_variation(
        self,
        source: Composite,
        proposed_json: Any,
        relationship_type: RelationshipType,
        title: Optional[str] = None,
        description: Optional[str] = None,
        variation_type: Optional[str] = None
    ) -> VariationResult:
        """Ответвление композита с новым содержимым.

        Документ "после", новый композит и ребро к исходному композиту
        записываются одной транзакцией. Запрос на изменение (со снимком "до")
        и операции создаются следом и не влияют на успех вариации: их ошибки
        логируются и возвращаются в warnings.
        """
        author = self.context.user_id

        source_document = await self.document_repository.get_any(source.compose_id)
        if source_document is None:
            raise NotFoundError(f"No content found for compose_id: {source.compose_id}")

        try:
            document = await self.document_repository.create(Document.create_document(
                json=proposed_json,
                author=author,
                schema=source_document.schema
            ))
            composite = await self.composite_repository.create(Composite.create_variation(
                source=source,
                compose_id=document.id,
                author=author,
                title=title,
                description=description
            ))
            relationship = await self.relationship_repository.create(CompositeRelationship.link(
                source=composite,
                target=source,
                relationship_type=relationship_type,
                description=composite.description,
                variation_type=variation_type or relationship_type.value
            ))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            f"Variation {composite.id} of composite {source.id} created "
            f"({relationship_type.value}) by {author}"
        )
        result = VariationResult(composite=composite, document=document, relationship=relationship)

        try:
            patch_request = await self.patch_service.open_patch_request(
                before=source_document,
                after=document,
                composite_id=composite.id,
                title=composite.title,
                description=composite.description,
                status=PatchStatus.APPROVED
            )
        except Exception as e:
            logger.warning(f"Failed to create patch request for variation {composite.id}: {e}")
            result.warnings.append(f"Patch request was not created: {e}")
            return result

        result.patch_request_id = patch_request.id
        await self.patch_service.record_operations_safely(
            patch_request, source_document.json, proposed_json, result.warnings
        )
        return result

    async def create_composite_variation(self, request: CreateVariationRequest) -> CreateVariationResponse:
        """Операция createCompositeVariation"""
        logger.info(
            f"[createCompositeVariation] source={request.source_composite_id} "
            f"type={request.variation_type} user={self.context.user_id}"
        )

        try:
            source = await self.resolve_source(request.source_composite_id)
            source_document = await self.document_repository.get_any(source.compose_id)
            if source_document is None:
                raise NotFoundError(f"No content found for compose_id: {source.compose_id}")

            content = source_document.json
            if request.apply_pending_changes and request.pending_edit_request_id:
                content = await self.pending_content(request.pending_edit_request_id)

            result = await self.create_variation(
                source=source,
                proposed_json=content,
                relationship_type=RelationshipType.VARIATION_OF,
                title=request.title,
                description=request.description,
                variation_type=request.variation_type
            )
        except Exception as e:
            logger.error(f"[createCompositeVariation] Error creating variation: {e}")
            return CreateVariationResponse(
                success=False,
                message=str(e) or "Failed to create variation",
                composite=None
            )

        return CreateVariationResponse(
            success=True,
            message="Variation created successfully",
            composite=result.composite.to_dict(),
            patch_request_id=result.patch_request_id,
            warnings=result.warnings
        )


class CompositeService:
    """Сервис для создания и архивации композитов"""

    def __init__(self, context: OperationContext):
        self.context = context
        self.session = context.session
        self.document_repository = DocumentRepository(self.session)
        self.composite_repository = CompositeRepository(self.session)
        self.validator = SchemaValidator(self.document_repository)

    async def create_composite(self, request: CreateCompositeRequest) -> CreateCompositeResponse:
        """Новый композит вместе с первым документом"""
        try:
            outcome = await self.validator.validate(request.content, request.schema_id)
            if not outcome.valid:
                return CreateCompositeResponse(
                    success=False,
                    error="Validation failed",
                    details=[issue.to_dict() for issue in outcome.errors]
                )

            document = await self.document_repository.create(Document.create_document(
                json=request.content,
                author=self.context.user_id,
                schema=request.schema_id
            ))
            composite = await self.composite_repository.create(Composite.create_composite(
                title=request.title,
                description=request.description,
                compose_id=document.id,
                author=self.context.user_id
            ))
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"[createComposite] Unexpected error: {e}")
            return CreateCompositeResponse(success=False, error="Unexpected error", details=str(e))

        logger.info(f"[createComposite] composite {composite.id} -> document {document.id}")
        return CreateCompositeResponse(success=True, composite=composite.to_dict(), document=document.to_dict())

    async def toggle_archive(self, composite_id: uuid.UUID, archive: bool) -> ToggleArchiveResponse:
        """Перенос документа композита в архив и обратно; только для автора"""
        try:
            composite = await self.composite_repository.get_by_id(composite_id)
            if composite is None:
                raise NotFoundError(f"Composite {composite_id} not found")

            if not composite.is_owned_by(self.context.user_id):
                raise AuthorizationError("Only the composite author can archive it")

            if composite.archived == archive:
                return ToggleArchiveResponse(
                    success=True,
                    composite=composite.to_dict(),
                    message="Archive status unchanged"
                )

            if archive:
                await self.document_repository.archive(composite.compose_id)
            else:
                await self.document_repository.restore(composite.compose_id)

            composite.archived = archive
            updated = await self.composite_repository.update(composite)
            await self.session.commit()
        except AuthorizationError:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"[toggleCompositeArchive] Unexpected error: {e}")
            return ToggleArchiveResponse(success=False, error="Unexpected error", details=str(e))

        logger.info(f"[toggleCompositeArchive] composite {composite_id} archived={archive}")
        return ToggleArchiveResponse(
            success=True,
            composite=updated.to_dict(),
            message="Composite archived" if archive else "Composite restored"
        )
