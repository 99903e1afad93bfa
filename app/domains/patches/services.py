import logging
import uuid
from typing import Any, Dict, List, Optional

from app.core.auth import OperationContext
from app.core.exceptions import AuthorizationError, InvalidTransitionError, NotFoundError
from app.db.repositories.composite_repository import CompositeRepository
from app.db.repositories.document_repository import DocumentRepository
from app.db.repositories.patch_request_repository import PatchRequestRepository, OperationRepository
from app.db.repositories.user_repository import UserRepository
from app.domains.composites.entities import Composite
from app.domains.documents.entities import Document
from app.domains.documents.validation import SchemaValidator
from app.domains.patches.entities import PatchRequest, PatchStatus, Operation, diff_operations
from app.domains.patches.schemas import (
    AuthorRef, OperationView, PatchRequestView, QueryPatchRequestsResponse,
    SubmitPatchRequestRequest, SubmitPatchRequestResponse,
    UpdateEditRequestResponse, VersionView
)

logger = logging.getLogger(__name__)


class PatchRequestService:
    """Сервис для запросов на изменение и производных операций"""

    def __init__(self, context: OperationContext):
        self.context = context
        self.session = context.session
        self.document_repository = DocumentRepository(self.session)
        self.composite_repository = CompositeRepository(self.session)
        self.patch_request_repository = PatchRequestRepository(self.session)
        self.operation_repository = OperationRepository(self.session)
        self.user_repository = UserRepository(self.session)
        self.validator = SchemaValidator(self.document_repository)

    async def open_patch_request(
        self,
        before: Document,
        after: Document,
        composite_id: uuid.UUID,
        title: str,
        description: Optional[str] = None,
        status: PatchStatus = PatchStatus.PENDING
    ) -> PatchRequest:
        """Снимок "до" и запрос на изменение в одной транзакции.

        Снимок - дословная копия исходного документа от имени автора запроса,
        чтобы последующие правки оригинала не искажали diff.
        """
        try:
            snapshot = await self.document_repository.create(before.clone(author=self.context.user_id))
            patch_request = await self.patch_request_repository.create(PatchRequest.create_request(
                title=title,
                description=description,
                author=self.context.user_id,
                composite_id=composite_id,
                old_version_id=snapshot.id,
                new_version_id=after.id,
                status=status
            ))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Patch request {patch_request.id} opened for composite {composite_id} ({status.value})")
        return patch_request

    async def record_operations(self, patch_request: PatchRequest, before: Any, after: Any) -> List[Operation]:
        """Сохранение операций, полученных поверхностным diff"""
        operations = [operation.bind(patch_request) for operation in diff_operations(before, after)]
        if not operations:
            return []

        try:
            await self.operation_repository.create_many(operations)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        return operations

    async def record_operations_safely(
        self,
        patch_request: PatchRequest,
        before: Any,
        after: Any,
        warnings: List[str]
    ) -> List[Operation]:
        """То же, что record_operations, но ошибка попадает в warnings"""
        try:
            return await self.record_operations(patch_request, before, after)
        except Exception as e:
            logger.warning(f"Failed to record operations for patch request {patch_request.id}: {e}")
            warnings.append(f"Operations were not recorded: {e}")
            return []

    async def submit(self, request: SubmitPatchRequestRequest) -> SubmitPatchRequestResponse:
        """Предложение изменения композита на ревью (статус pending)"""
        logger.info(f"[submitPatchRequest] composite={request.composite_id} user={self.context.user_id}")

        try:
            composite = await self.composite_repository.get_by_id(request.composite_id)
            if composite is None:
                raise NotFoundError(f"Composite {request.composite_id} not found")

            current = await self.document_repository.get_any(composite.compose_id)
            if current is None:
                raise NotFoundError(f"No content found for compose_id: {composite.compose_id}")

            outcome = await self.validator.validate(request.content, current.schema)
            if not outcome.valid:
                return SubmitPatchRequestResponse(
                    success=False,
                    error="Validation failed",
                    details=[issue.to_dict() for issue in outcome.errors]
                )

            try:
                after = await self.document_repository.create(Document.create_document(
                    json=request.content,
                    author=self.context.user_id,
                    schema=current.schema
                ))
            except Exception:
                await self.session.rollback()
                raise

            patch_request = await self.open_patch_request(
                before=current,
                after=after,
                composite_id=composite.id,
                title=request.title,
                description=request.description,
                status=PatchStatus.PENDING
            )
        except Exception as e:
            logger.error(f"[submitPatchRequest] Unexpected error: {e}")
            return SubmitPatchRequestResponse(success=False, error="Unexpected error", details=str(e))

        warnings: List[str] = []
        await self.record_operations_safely(patch_request, current.json, request.content, warnings)

        return SubmitPatchRequestResponse(
            success=True,
            patch_request_id=patch_request.id,
            message="Patch request submitted for review",
            warnings=warnings
        )

    async def decide(self, request_id: uuid.UUID, action: str) -> UpdateEditRequestResponse:
        """Одобрение или отклонение запроса автором композита"""
        logger.info(f"[updateEditRequest] {action} {request_id} by {self.context.user_id}")

        try:
            patch_request = await self.patch_request_repository.get_by_id(request_id)
            if patch_request is None:
                raise NotFoundError(f"Patch request {request_id} not found")

            composite = await self.composite_repository.get_by_id(patch_request.composite_id)
            if composite is None:
                raise NotFoundError(f"Composite {patch_request.composite_id} not found")

            if not composite.is_owned_by(self.context.user_id):
                raise AuthorizationError("Only the composite author can decide on patch requests")

            try:
                if action == "approve":
                    patch_request.approve()
                else:
                    patch_request.reject()
            except InvalidTransitionError as e:
                return UpdateEditRequestResponse(
                    success=False,
                    patch_request=patch_request.to_dict(),
                    message=str(e)
                )

            updated = await self.patch_request_repository.update_status(patch_request)
            if patch_request.status == PatchStatus.APPROVED and patch_request.new_version_id:
                await self._adopt_proposal(composite, patch_request.new_version_id)

            await self.session.commit()
        except AuthorizationError:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"[updateEditRequest] Unexpected error: {e}")
            return UpdateEditRequestResponse(success=False, patch_request=None, message=str(e))

        return UpdateEditRequestResponse(
            success=True,
            patch_request=updated.to_dict(),
            message=f"Patch request {updated.status.value}"
        )

    async def _adopt_proposal(self, composite: Composite, proposal_id: uuid.UUID) -> Document:
        """Перевод композита на копию принятой версии.

        Копия принадлежит автору композита, поэтому дальнейшие правки
        владельца снова идут на месте, а не через вариацию.
        """
        proposal = await self.document_repository.get_any(proposal_id)
        if proposal is None:
            raise NotFoundError(f"No content found for new version: {proposal_id}")

        adopted = await self.document_repository.create(proposal.adopt(author=composite.author))
        composite.point_to(adopted.id)
        await self.composite_repository.update(composite)

        logger.info(f"Composite {composite.id} now points to {adopted.id} (adopted from {proposal_id})")
        return adopted

    async def query(self, composite_ids: List[uuid.UUID]) -> QueryPatchRequestsResponse:
        """Сборка запросов на изменение для ревью по набору композитов"""
        patch_requests = await self.patch_request_repository.get_by_composites(composite_ids)

        author_names = await self.user_repository.get_names(request.author for request in patch_requests)
        composites = await self.composite_repository.get_many(composite_ids)

        version_ids = []
        for request in patch_requests:
            if request.old_version_id:
                version_ids.append(request.old_version_id)
            if request.new_version_id:
                version_ids.append(request.new_version_id)
        versions = await self.document_repository.get_many(version_ids)

        operations = await self.operation_repository.get_by_patch_requests(request.id for request in patch_requests)

        views = []
        for request in patch_requests:
            composite = composites.get(request.composite_id)
            views.append(PatchRequestView(
                id=request.id,
                title=request.title or "",
                description=request.description or "",
                created_at=request.created_at,
                updated_at=request.updated_at,
                author=AuthorRef(
                    id=str(request.author) if request.author in author_names else "",
                    name=author_names.get(request.author, "Unknown")
                ),
                composite_author=str(composite.author) if composite else "",
                changes=self._version_view(versions.get(request.new_version_id)),
                previous_version=self._version_view(versions.get(request.old_version_id)),
                status=request.status.value,
                composite_id=request.composite_id,
                operations=[OperationView(**operation.to_dict()) for operation in operations.get(request.id, [])]
            ))

        logger.info(f"[queryPatchRequests] {len(views)} patch requests for {len(composite_ids)} composites")
        return QueryPatchRequestsResponse(patch_requests=views)

    @staticmethod
    def _version_view(document: Optional[Document]) -> VersionView:
        if document is None:
            return VersionView()
        body: Dict[str, Any] = document.json if isinstance(document.json, dict) else {}
        return VersionView(
            content=body.get("content"),
            schema_=body.get("schema"),
            instance=document.json,
            version=document.version,
            created_at=document.created_at
        )
