import uuid

from sqlalchemy import func, select

from app.db.models import Composite as CompositeModel, CompositeRelationship as CompositeRelationshipModel
from app.db.repositories import (
    CompositeRepository, DocumentRepository, OperationRepository, PatchRequestRepository
)
from app.domains.documents.entities import Document
from app.domains.patches.entities import OperationType, PatchStatus
from tests.conftest import auth_headers, make_composite


async def _count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar()


async def test_requires_authentication(client):
    response = await client.post("/operations/editDB", json={"id": str(uuid.uuid4()), "json": {}})

    assert response.status_code == 401


async def test_rejects_invalid_token(client):
    response = await client.post(
        "/operations/editDB",
        json={"id": str(uuid.uuid4()), "json": {}},
        headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == 401


async def test_owner_updates_in_place(client, db, alice, person_schema):
    composite, document = await make_composite(db, alice, {"name": "x"}, person_schema.id)
    composites_before = await _count(db, CompositeModel)

    response = await client.post(
        "/operations/editDB",
        json={"id": str(document.id), "json": {"name": "z"}},
        headers=auth_headers(alice)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["updatedData"]["id"] == str(document.id)
    assert body["updatedData"]["version"] == 2
    assert "createdVariation" not in body

    stored = await DocumentRepository(db).get_active(document.id)
    assert stored.json == {"name": "z"}
    assert stored.version == 2
    assert await _count(db, CompositeModel) == composites_before


async def test_non_owner_edit_creates_variation(client, db, alice, bob, person_schema):
    source, d1 = await make_composite(db, alice, {"name": "x"}, person_schema.id)
    documents_before = await DocumentRepository(db).count_active()

    response = await client.post(
        "/operations/editDB",
        json={"id": str(d1.id), "json": {"name": "y"}},
        headers=auth_headers(bob)
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["createdVariation"] is True
    assert body["warnings"] == []

    # Исходный документ не изменился
    original = await DocumentRepository(db).get_active(d1.id)
    assert original.json == {"name": "x"}
    assert original.version == 1

    new_composite = await CompositeRepository(db).get_by_id(uuid.UUID(body["newCompositeId"]))
    assert new_composite.author == bob.id
    assert new_composite.title == "Variation of People"
    d3 = await DocumentRepository(db).get_active(new_composite.compose_id)
    assert d3.json == {"name": "y"}
    assert d3.author == bob.id
    assert d3.schema == person_schema.id
    assert d3.version == 1

    edges = (await db.execute(select(CompositeRelationshipModel))).scalars().all()
    assert len(edges) == 1
    assert edges[0].source_composite_id == new_composite.id
    assert edges[0].target_composite_id == source.id
    assert edges[0].relationship_type == "edit_variation"

    patch_request = await PatchRequestRepository(db).get_by_id(uuid.UUID(body["patchRequestId"]))
    assert patch_request.status == PatchStatus.APPROVED
    assert patch_request.composite_id == new_composite.id
    assert patch_request.new_version_id == d3.id
    assert patch_request.old_version_id != d1.id
    snapshot = await DocumentRepository(db).get_active(patch_request.old_version_id)
    assert snapshot.json == {"name": "x"}
    assert snapshot.author == bob.id

    operations = (await OperationRepository(db).get_by_patch_requests([patch_request.id]))[patch_request.id]
    assert len(operations) == 1
    assert operations[0].operation_type == OperationType.REPLACE
    assert operations[0].path == ["name"]
    assert operations[0].old_value == "x"
    assert operations[0].new_value == "y"

    # Новый документ "после" и снимок "до"
    assert await DocumentRepository(db).count_active() == documents_before + 2


async def test_validation_failure_creates_nothing(client, db, alice, bob, person_schema):
    _, d1 = await make_composite(db, alice, {"name": "x"}, person_schema.id)
    documents_before = await DocumentRepository(db).count_active()
    composites_before = await _count(db, CompositeModel)

    response = await client.post(
        "/operations/editDB",
        json={"id": str(d1.id), "json": {"name": 123}},
        headers=auth_headers(bob)
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert body["details"][0]["field"] == "name"
    assert await DocumentRepository(db).count_active() == documents_before
    assert await _count(db, CompositeModel) == composites_before


async def test_owner_edit_of_archived_document_revives_clone(client, db, alice, person_schema):
    composite, d1 = await make_composite(db, alice, {"name": "x"}, person_schema.id)
    await DocumentRepository(db).archive(d1.id)
    await db.commit()

    response = await client.post(
        "/operations/editDB",
        json={"id": str(d1.id), "json": {"name": "revived"}},
        headers=auth_headers(alice)
    )

    body = response.json()
    assert body["success"] is True
    updated = body["updatedData"]
    assert updated["id"] != str(d1.id)
    assert updated["prev"] == str(d1.id)
    assert updated["json"] == {"name": "revived"}
    assert updated["version"] == 2

    archived = await DocumentRepository(db).get_archived(d1.id)
    assert archived.json == {"name": "x"}
    assert archived.version == 1

    repointed = await CompositeRepository(db).get_by_id(composite.id)
    assert str(repointed.compose_id) == updated["id"]


async def test_missing_document_returns_error_envelope(client, alice):
    response = await client.post(
        "/operations/editDB",
        json={"id": str(uuid.uuid4()), "json": {"name": "x"}},
        headers=auth_headers(alice)
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["error"] == "Unexpected error"
    assert "not found" in body["details"]


async def test_non_owner_edit_without_composite_fails(client, db, alice, bob):
    document = await DocumentRepository(db).create(
        Document.create_document(json={"name": "x"}, author=alice.id)
    )
    await db.commit()

    response = await client.post(
        "/operations/editDB",
        json={"id": str(document.id), "json": {"name": "y"}},
        headers=auth_headers(bob)
    )

    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Unexpected error"


async def test_owner_edit_reactivates_archived_composite(client, db, alice, bob):
    composite, d1 = await make_composite(db, alice, {"name": "x"})
    await client.post(
        "/operations/toggleCompositeArchive",
        json={"compositeId": str(composite.id), "archive": True},
        headers=auth_headers(alice)
    )

    response = await client.post(
        "/operations/editDB",
        json={"id": str(d1.id), "json": {"name": "revived"}},
        headers=auth_headers(alice)
    )

    assert response.json()["success"] is True
    revived = await CompositeRepository(db).get_by_id(composite.id)
    assert revived.archived is False
    assert str(revived.compose_id) == response.json()["updatedData"]["id"]

    # Композит снова можно архивировать, и он виден как кандидат на слияние
    variation = await client.post(
        "/operations/createCompositeVariation",
        json={"sourceCompositeId": str(composite.id), "title": "Fork"},
        headers=auth_headers(bob)
    )
    candidates = await client.post(
        "/operations/findMergeCandidates",
        json={"compositeId": variation.json()["composite"]["id"]},
        headers=auth_headers(bob)
    )
    assert [c["composite_id"] for c in candidates.json()["candidates"]] == [str(composite.id)]

    archived_again = await client.post(
        "/operations/toggleCompositeArchive",
        json={"compositeId": str(composite.id), "archive": True},
        headers=auth_headers(alice)
    )
    assert archived_again.json()["composite"]["archived"] is True
    assert await DocumentRepository(db).get_active(revived.compose_id) is None


async def test_variation_title_is_capped_for_long_source_title(client, db, alice, bob):
    _, d1 = await make_composite(db, alice, {"name": "x"}, title="T" * 250)

    response = await client.post(
        "/operations/editDB",
        json={"id": str(d1.id), "json": {"name": "y"}},
        headers=auth_headers(bob)
    )

    body = response.json()
    assert body["success"] is True
    assert body["warnings"] == []
    new_composite = await CompositeRepository(db).get_by_id(uuid.UUID(body["newCompositeId"]))
    assert len(new_composite.title) == 255
    assert new_composite.title.startswith("Variation of TTT")
    patch_request = await PatchRequestRepository(db).get_by_id(uuid.UUID(body["patchRequestId"]))
    assert patch_request.title == new_composite.title
