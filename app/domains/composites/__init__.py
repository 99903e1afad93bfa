from app.domains.composites.entities import Composite, CompositeRelationship, RelationshipType

__all__ = ["Composite", "CompositeRelationship", "RelationshipType"]
