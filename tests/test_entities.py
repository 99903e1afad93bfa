import uuid

import pytest

from app.core.exceptions import InvalidTransitionError
from app.domains.composites.entities import Composite, CompositeRelationship, RelationshipType
from app.domains.documents.entities import Document
from app.domains.patches.entities import PatchRequest, PatchStatus, Operation, OperationType


def test_apply_update_increments_version():
    document = Document.create_document(json={"a": 1}, author=uuid.uuid4())

    document.apply_update({"a": 2})

    assert document.json == {"a": 2}
    assert document.version == 2


def test_archived_document_is_immutable():
    document = Document(id=uuid.uuid4(), json={"a": 1}, author=uuid.uuid4(), archived=True)

    with pytest.raises(ValueError):
        document.apply_update({"a": 2})


def test_clone_copies_json_deeply():
    document = Document.create_document(json={"nested": {"a": 1}}, author=uuid.uuid4(), schema=uuid.uuid4())
    other = uuid.uuid4()

    clone = document.clone(author=other)
    clone.json["nested"]["a"] = 2

    assert clone.id != document.id
    assert clone.author == other
    assert clone.schema == document.schema
    assert clone.version == 1
    assert document.json == {"nested": {"a": 1}}


def test_revive_points_back_to_archived_original():
    archived = Document(id=uuid.uuid4(), json={"a": 1}, author=uuid.uuid4(), version=3, archived=True)

    revived = archived.revive()

    assert revived.prev == archived.id
    assert revived.json == archived.json
    assert revived.author == archived.author
    assert revived.archived is False


def test_variation_defaults_title_from_source():
    source = Composite.create_composite(title="Recipes", compose_id=uuid.uuid4(), author=uuid.uuid4())

    variation = Composite.create_variation(source=source, compose_id=uuid.uuid4(), author=uuid.uuid4())

    assert variation.title == "Variation of Recipes"
    assert variation.description == "Variation of Recipes"


def test_relationship_link_metadata():
    source = Composite.create_composite(title="B", compose_id=uuid.uuid4(), author=uuid.uuid4())
    target = Composite.create_composite(title="A", compose_id=uuid.uuid4(), author=uuid.uuid4())

    edge = CompositeRelationship.link(source, target, RelationshipType.EDIT_VARIATION, variation_type="edit")

    assert edge.source_composite_id == source.id
    assert edge.target_composite_id == target.id
    assert edge.metadata["description"] == "Variation of A"
    assert edge.metadata["target_composite_id"] == str(target.id)
    assert edge.metadata["variation_type"] == "edit"
    assert edge.other_end(source.id) == target.id
    assert edge.other_end(target.id) == source.id


def _patch_request() -> PatchRequest:
    return PatchRequest.create_request(
        title="Fix",
        author=uuid.uuid4(),
        composite_id=uuid.uuid4(),
        old_version_id=uuid.uuid4(),
        new_version_id=uuid.uuid4()
    )


def test_patch_request_approve():
    patch_request = _patch_request()

    patch_request.approve()

    assert patch_request.status == PatchStatus.APPROVED


def test_patch_request_cannot_be_decided_twice():
    patch_request = _patch_request()
    patch_request.reject()

    with pytest.raises(InvalidTransitionError):
        patch_request.approve()
    assert patch_request.status == PatchStatus.REJECTED


def test_operation_bind_copies_patch_request_fields():
    patch_request = _patch_request()

    operation = Operation(OperationType.ADD, ["x"], new_value=1).bind(patch_request)

    assert operation.patch_request_id == patch_request.id
    assert operation.author == patch_request.author
    assert operation.composite_id == patch_request.composite_id
    assert operation.content_id == patch_request.new_version_id


def test_variation_title_is_capped_at_column_width():
    source = Composite.create_composite(title="R" * 250, compose_id=uuid.uuid4(), author=uuid.uuid4())

    variation = Composite.create_variation(source=source, compose_id=uuid.uuid4(), author=uuid.uuid4())

    assert len(variation.title) == 255
    assert variation.description == f"Variation of {source.title}"


def test_adopt_copies_proposal_for_new_owner():
    proposal = Document.create_document(json={"name": "y"}, author=uuid.uuid4(), schema=uuid.uuid4())
    owner = uuid.uuid4()

    adopted = proposal.adopt(author=owner)

    assert adopted.id != proposal.id
    assert adopted.author == owner
    assert adopted.prev == proposal.id
    assert adopted.schema == proposal.schema
    assert adopted.json == proposal.json
    assert adopted.json is not proposal.json
