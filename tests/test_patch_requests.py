import uuid

from app.db.repositories import CompositeRepository, DocumentRepository, OperationRepository, PatchRequestRepository
from app.domains.patches.entities import diff_operations
from tests.conftest import auth_headers, make_composite


async def _submit(client, user, composite, content, title="Proposal"):
    response = await client.post(
        "/operations/submitPatchRequest",
        json={"compositeId": str(composite.id), "json": content, "title": title},
        headers=auth_headers(user)
    )
    return response.json()


async def test_submit_creates_pending_request(client, db, alice, bob, person_schema):
    composite, document = await make_composite(db, alice, {"name": "x"}, person_schema.id)

    body = await _submit(client, bob, composite, {"name": "y", "age": 40})

    assert body["success"] is True
    assert body["patchRequestId"]
    assert body["warnings"] == []
    # Композит не меняется до одобрения
    unchanged = await CompositeRepository(db).get_by_id(composite.id)
    assert unchanged.compose_id == document.id


async def test_submit_validates_against_composite_schema(client, db, alice, bob, person_schema):
    composite, _ = await make_composite(db, alice, {"name": "x"}, person_schema.id)

    body = await _submit(client, bob, composite, {"age": 40})

    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert body["details"][0]["field"] == "name"


async def test_query_projects_variation_for_review(client, db, alice, bob, person_schema):
    _, d1 = await make_composite(db, alice, {"name": "x"}, person_schema.id)
    edit = await client.post(
        "/operations/editDB",
        json={"id": str(d1.id), "json": {"name": "y"}},
        headers=auth_headers(bob)
    )
    new_composite_id = edit.json()["newCompositeId"]

    response = await client.post("/operations/queryPatchRequests", json={"compositeIds": [new_composite_id]})

    assert response.status_code == 200
    patch_requests = response.json()["patch_requests"]
    assert len(patch_requests) == 1
    view = patch_requests[0]
    assert view["id"] == edit.json()["patchRequestId"]
    assert view["status"] == "approved"
    assert view["composite_id"] == new_composite_id
    assert view["author"] == {"id": str(bob.id), "name": "Bob"}
    assert view["composite_author"] == str(bob.id)
    assert view["changes"]["instance"] == {"name": "y"}
    assert view["changes"]["version"] == 1
    assert view["previousVersion"]["instance"] == {"name": "x"}
    assert [(op["operation_type"], op["path"]) for op in view["operations"]] == [("replace", ["name"])]


async def test_query_orders_newest_first(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"name": "x"})
    first = await _submit(client, bob, composite, {"name": "y"}, title="First")
    second = await _submit(client, bob, composite, {"name": "z"}, title="Second")

    response = await client.post(
        "/operations/queryPatchRequests",
        json={"compositeIds": [str(composite.id)]},
        headers=auth_headers(alice)
    )

    ids = [view["id"] for view in response.json()["patch_requests"]]
    assert ids == [second["patchRequestId"], first["patchRequestId"]]


async def test_query_reads_archived_versions(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"name": "x"})
    submitted = await _submit(client, bob, composite, {"name": "y"})
    patch_request = await PatchRequestRepository(db).get_by_id(uuid.UUID(submitted["patchRequestId"]))
    await DocumentRepository(db).archive(patch_request.old_version_id)
    await DocumentRepository(db).archive(patch_request.new_version_id)
    await db.commit()

    response = await client.post("/operations/queryPatchRequests", json={"compositeIds": [str(composite.id)]})

    view = response.json()["patch_requests"][0]
    assert view["id"] == submitted["patchRequestId"]
    assert view["previousVersion"]["instance"] == {"name": "x"}
    assert view["changes"]["instance"] == {"name": "y"}


async def test_query_unknown_composites_is_empty(client):
    response = await client.post("/operations/queryPatchRequests", json={"compositeIds": [str(uuid.uuid4())]})

    assert response.json() == {"patch_requests": []}


async def test_author_approves_request(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"name": "x"})
    submitted = await _submit(client, bob, composite, {"name": "y"})

    response = await client.post(
        "/operations/updateEditRequest",
        json={"id": submitted["patchRequestId"], "action": "approve"},
        headers=auth_headers(alice)
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["patchRequest"]["status"] == "approved"

    approved = await CompositeRepository(db).get_by_id(composite.id)
    content = await DocumentRepository(db).get_active(approved.compose_id)
    assert content.json == {"name": "y"}
    assert content.author == alice.id
    assert str(content.prev) == body["patchRequest"]["new_version_id"]
    # Предложенная версия остается за автором запроса
    proposal = await DocumentRepository(db).get_active(content.prev)
    assert proposal.author == bob.id


async def test_owner_keeps_editing_in_place_after_approval(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"name": "x"})
    submitted = await _submit(client, bob, composite, {"name": "y"})
    await client.post(
        "/operations/updateEditRequest",
        json={"id": submitted["patchRequestId"], "action": "approve"},
        headers=auth_headers(alice)
    )
    approved = await CompositeRepository(db).get_by_id(composite.id)

    response = await client.post(
        "/operations/editDB",
        json={"id": str(approved.compose_id), "json": {"name": "z"}},
        headers=auth_headers(alice)
    )

    body = response.json()
    assert body["success"] is True
    assert "createdVariation" not in body
    assert body["updatedData"]["id"] == str(approved.compose_id)
    assert body["updatedData"]["version"] == 2
    assert (await CompositeRepository(db).get_by_id(composite.id)).compose_id == approved.compose_id


async def test_author_rejects_request(client, db, alice, bob):
    composite, document = await make_composite(db, alice, {"name": "x"})
    submitted = await _submit(client, bob, composite, {"name": "y"})

    response = await client.post(
        "/operations/updateEditRequest",
        json={"id": submitted["patchRequestId"], "action": "reject"},
        headers=auth_headers(alice)
    )

    body = response.json()
    assert body["success"] is True
    assert body["patchRequest"]["status"] == "rejected"
    unchanged = await CompositeRepository(db).get_by_id(composite.id)
    assert unchanged.compose_id == document.id


async def test_only_composite_author_can_decide(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"name": "x"})
    submitted = await _submit(client, bob, composite, {"name": "y"})

    response = await client.post(
        "/operations/updateEditRequest",
        json={"id": submitted["patchRequestId"], "action": "approve"},
        headers=auth_headers(bob)
    )

    assert response.status_code == 403
    assert response.json()["success"] is False


async def test_decided_request_cannot_be_changed(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"name": "x"})
    submitted = await _submit(client, bob, composite, {"name": "y"})
    await client.post(
        "/operations/updateEditRequest",
        json={"id": submitted["patchRequestId"], "action": "reject"},
        headers=auth_headers(alice)
    )

    response = await client.post(
        "/operations/updateEditRequest",
        json={"id": submitted["patchRequestId"], "action": "approve"},
        headers=auth_headers(alice)
    )

    body = response.json()
    assert body["success"] is False
    assert body["patchRequest"]["status"] == "rejected"
    assert body["message"] == "Patch request already rejected"


async def test_unknown_action_is_rejected(client, alice):
    response = await client.post(
        "/operations/updateEditRequest",
        json={"id": str(uuid.uuid4()), "action": "merge"},
        headers=auth_headers(alice)
    )

    assert response.status_code == 422


async def test_long_request_title_is_rejected(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"name": "x"})

    response = await client.post(
        "/operations/submitPatchRequest",
        json={"compositeId": str(composite.id), "json": {"name": "y"}, "title": "t" * 256},
        headers=auth_headers(bob)
    )

    assert response.status_code == 422


async def test_operations_keep_diff_order_with_equal_timestamps(client, db, alice, bob):
    composite, _ = await make_composite(db, alice, {"a": 1, "b": 2})
    submitted = await _submit(client, bob, composite, {"a": 1, "b": 2})
    patch_request = await PatchRequestRepository(db).get_by_id(uuid.UUID(submitted["patchRequestId"]))
    operations = [operation.bind(patch_request) for operation in diff_operations({"a": 1, "b": 2}, {"a": 3, "c": 4})]
    await OperationRepository(db).create_many(list(reversed(operations)))
    await db.commit()

    response = await client.post("/operations/queryPatchRequests", json={"compositeIds": [str(composite.id)]})

    view = response.json()["patch_requests"][0]
    assert [operation["path"] for operation in view["operations"]] == [["a"], ["b"], ["c"]]
    assert [operation["metadata"]["ordinal"] for operation in view["operations"]] == [0, 1, 2]
