import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OperationContext
from app.core.db import get_db
from app.core.exceptions import NotFoundError
from app.db.repositories.composite_repository import CompositeRepository, CompositeRelationshipRepository
from app.db.repositories.user_repository import UserRepository
from app.domains.composites.schemas import FindMergeCandidatesResponse, MergeCandidate

logger = logging.getLogger(__name__)


class MergeResolver(Protocol):
    """Трехстороннее слияние композитов, выполняемое вне приложения"""

    async def merge(
        self,
        user_id: uuid.UUID,
        source_composite_id: uuid.UUID,
        target_composite_id: uuid.UUID
    ) -> Dict[str, Any]:
        ...


class DatabaseMergeResolver:
    """Слияние через серверную функцию three_way_merge_composites"""

    statement = text(
        "SELECT three_way_merge_composites(:p_user_id, :p_source_composite_id, :p_target_composite_id)"
    )

    def __init__(self, session: AsyncSession):
        self.session = session

    async def merge(
        self,
        user_id: uuid.UUID,
        source_composite_id: uuid.UUID,
        target_composite_id: uuid.UUID
    ) -> Dict[str, Any]:
        try:
            result = await self.session.execute(self.statement, {
                "p_user_id": user_id,
                "p_source_composite_id": source_composite_id,
                "p_target_composite_id": target_composite_id,
            })
            payload = result.scalar()
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        # asyncpg отдает json строкой
        if isinstance(payload, str):
            payload = json.loads(payload)
        if payload is None:
            raise RuntimeError("three_way_merge_composites returned no result")
        return payload


async def get_merge_resolver(db: AsyncSession = Depends(get_db)) -> MergeResolver:
    return DatabaseMergeResolver(db)


class MergeService:
    """Слияние вариаций и поиск кандидатов на слияние"""

    def __init__(self, context: OperationContext, resolver: Optional[MergeResolver] = None):
        self.context = context
        self.session = context.session
        self.resolver = resolver
        self.composite_repository = CompositeRepository(self.session)
        self.relationship_repository = CompositeRelationshipRepository(self.session)
        self.user_repository = UserRepository(self.session)

    async def three_way_merge(
        self,
        source_composite_id: uuid.UUID,
        target_composite_id: uuid.UUID,
        is_drag_and_drop: bool = False
    ) -> Dict[str, Any]:
        """Вызов резолвера; результат возвращается без изменений"""
        logger.info(
            f"[threeWayMerge] {source_composite_id} -> {target_composite_id} "
            f"user={self.context.user_id} drag_and_drop={is_drag_and_drop}"
        )

        try:
            result = await self.resolver.merge(self.context.user_id, source_composite_id, target_composite_id)
        except Exception as e:
            logger.error(f"[threeWayMerge] Unexpected error: {e}")
            return {"success": False, "error": "Unexpected error", "details": str(e)}

        metrics = {
            key: result.get(key)
            for key in ("success", "conflicts_detected", "conflicts_resolved", "operations_created")
        }
        logger.info(f"[threeWayMerge] result: {json.dumps(metrics)}")
        return result

    async def find_candidates(self, composite_id: uuid.UUID) -> FindMergeCandidatesResponse:
        """Композиты, связанные с данным ребром или общим предком"""
        logger.info(f"[findMergeCandidates] composite={composite_id}")

        try:
            composite = await self.composite_repository.get_by_id(composite_id)
            if composite is None:
                raise NotFoundError(f"Composite {composite_id} not found")

            relationship_types: Dict[uuid.UUID, Optional[str]] = {}
            edges = await self.relationship_repository.get_for_composite(composite_id)
            for edge in edges:
                relationship_types.setdefault(edge.other_end(composite_id), edge.relationship_type.value)

            # Соседи по линии: ребра, ведущие в те же композиты, что и наши
            targets = [edge.target_composite_id for edge in edges if edge.source_composite_id == composite_id]
            for edge in await self.relationship_repository.get_by_targets(targets):
                relationship_types.setdefault(edge.source_composite_id, None)

            relationship_types.pop(composite_id, None)
            composites = await self.composite_repository.get_many(relationship_types)
            related = [item for item in composites.values() if not item.archived]
            names = await self.user_repository.get_names(item.author for item in related)
        except Exception as e:
            logger.error(f"[findMergeCandidates] Error: {e}")
            return FindMergeCandidatesResponse(success=False, error=str(e), candidates=[])

        related.sort(key=lambda item: item.updated_at, reverse=True)
        candidates: List[MergeCandidate] = [
            MergeCandidate(
                composite_id=item.id,
                title=item.title,
                relationship_type=relationship_types[item.id],
                last_updated=item.updated_at,
                author_id=item.author,
                author_name=names.get(item.author, "Unknown")
            )
            for item in related
        ]
        return FindMergeCandidatesResponse(success=True, candidates=candidates)
