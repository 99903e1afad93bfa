"""Валидация JSON-документов по документам-схемам.

Схема хранится в таблице db как обычный документ в духе JSON Schema.
Перед проверкой она разбирается в дерево типизированных полей
(StringField, NumberField, ObjectField и т.д.), которое затем обходится
рекурсивно. Поля с ключом ``x-relation`` принимают идентификатор (строку),
объект целиком или null.

Документы, у которых ``schema`` равна идентификатору мета-схемы, сами
являются схемами и проверяются по фиксированной мета-схеме META_SCHEMA.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.db.repositories.document_repository import DocumentRepository


class SchemaDefinitionError(ValueError):
    """Документ-схема не может быть разобран"""


@dataclass
class StringField:
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    enum: Optional[List[Any]] = None
    nullable: bool = False


@dataclass
class NumberField:
    integer: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    enum: Optional[List[Any]] = None
    nullable: bool = False


@dataclass
class BooleanField:
    nullable: bool = False


@dataclass
class ObjectField:
    properties: Dict[str, "SchemaField"] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)
    # True - любые лишние ключи, False - запрещены, поле - схема для лишних ключей
    additional: Union[bool, "SchemaField"] = True
    nullable: bool = False


@dataclass
class ArrayField:
    items: Optional["SchemaField"] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    nullable: bool = False


@dataclass
class RelationField:
    """Ссылка на другой документ: id, объект или null"""
    target: Any = None


@dataclass
class AnyField:
    """Поле без ограничения типа"""


SchemaField = Union[StringField, NumberField, BooleanField, ObjectField, ArrayField, RelationField, AnyField]


@dataclass
class ValidationIssue:
    field: str
    message: str
    keyword: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "keyword": self.keyword,
            "params": self.params,
        }


@dataclass
class ValidationOutcome:
    valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)


PROPERTY_TYPES = ["string", "number", "integer", "boolean", "object", "array"]

META_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"type": "string", "enum": ["object"]},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "required": {"type": "array", "items": {"type": "string"}},
        "properties": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["type", "title"],
                "properties": {
                    "type": {"type": "string", "enum": PROPERTY_TYPES},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "minimum": {"type": "number"},
                    "maximum": {"type": "number"},
                    "minLength": {"type": "integer", "minimum": 0},
                    "maxLength": {"type": "integer", "minimum": 0},
                    "x-relation": {},
                },
            },
        },
    },
}


def _split_type(raw_type: Any) -> Tuple[Optional[str], bool]:
    """Разбор "type": строка либо список вида ["string", "null"]"""
    if isinstance(raw_type, list):
        nullable = "null" in raw_type
        types = [t for t in raw_type if t != "null"]
        if len(types) > 1:
            raise SchemaDefinitionError(f"Union types are not supported: {raw_type}")
        return (types[0] if types else None), nullable
    return raw_type, False


def parse_schema(definition: Any) -> SchemaField:
    """Разбор определения схемы в дерево полей"""
    if definition is True or definition == {}:
        return AnyField()
    if not isinstance(definition, dict):
        raise SchemaDefinitionError(f"Schema definition must be an object, got {type(definition).__name__}")

    if "x-relation" in definition:
        return RelationField(target=definition["x-relation"])

    schema_type, nullable = _split_type(definition.get("type"))
    if schema_type is None and "properties" in definition:
        schema_type = "object"

    if schema_type == "string":
        return StringField(
            min_length=definition.get("minLength"),
            max_length=definition.get("maxLength"),
            enum=definition.get("enum"),
            nullable=nullable
        )
    if schema_type in ("number", "integer"):
        return NumberField(
            integer=schema_type == "integer",
            minimum=definition.get("minimum"),
            maximum=definition.get("maximum"),
            enum=definition.get("enum"),
            nullable=nullable
        )
    if schema_type == "boolean":
        return BooleanField(nullable=nullable)
    if schema_type == "object":
        properties = definition.get("properties") or {}
        if not isinstance(properties, dict):
            raise SchemaDefinitionError("'properties' must be an object")
        additional = definition.get("additionalProperties", True)
        return ObjectField(
            properties={name: parse_schema(sub) for name, sub in properties.items()},
            required=list(definition.get("required") or []),
            additional=additional if isinstance(additional, bool) else parse_schema(additional),
            nullable=nullable
        )
    if schema_type == "array":
        items = definition.get("items")
        return ArrayField(
            items=parse_schema(items) if items is not None else None,
            min_items=definition.get("minItems"),
            max_items=definition.get("maxItems"),
            nullable=nullable
        )
    if schema_type is None:
        return AnyField()

    raise SchemaDefinitionError(f"Unsupported schema type: {schema_type}")


def _field_name(path: Tuple[str, ...]) -> str:
    # Указатель без ведущего "/", пустой путь - корень
    return "/".join(path) if path else "root"


def _type_error(path: Tuple[str, ...], type_name: Any) -> ValidationIssue:
    if isinstance(type_name, list):
        message = f"must be {', '.join(type_name[:-1])} or {type_name[-1]}"
    else:
        message = f"must be {type_name}"
    return ValidationIssue(field=_field_name(path), message=message, keyword="type", params={"type": type_name})


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, float) and value.is_integer())


def _json_equal(left: Any, right: Any) -> bool:
    """Равенство значений JSON: true и 1 различны, 1 и 1.0 равны"""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(_json_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(_json_equal(left[key], right[key]) for key in left)
    return type(left) is type(right) and left == right


def _check_enum(path: Tuple[str, ...], allowed: Optional[List[Any]], value: Any) -> Iterator[ValidationIssue]:
    if allowed is not None and not any(_json_equal(option, value) for option in allowed):
        yield ValidationIssue(
            field=_field_name(path),
            message="must be equal to one of the allowed values",
            keyword="enum",
            params={"allowedValues": allowed}
        )


def _validate(schema: SchemaField, value: Any, path: Tuple[str, ...]) -> Iterator[ValidationIssue]:
    if isinstance(schema, AnyField):
        return

    if isinstance(schema, RelationField):
        if value is not None and not isinstance(value, (str, dict)):
            yield _type_error(path, ["string", "object", "null"])
        return

    if value is None and schema.nullable:
        return

    if isinstance(schema, StringField):
        if not isinstance(value, str):
            yield _type_error(path, "string")
            return
        if schema.min_length is not None and len(value) < schema.min_length:
            yield ValidationIssue(
                field=_field_name(path),
                message=f"must NOT have fewer than {schema.min_length} characters",
                keyword="minLength",
                params={"limit": schema.min_length}
            )
        if schema.max_length is not None and len(value) > schema.max_length:
            yield ValidationIssue(
                field=_field_name(path),
                message=f"must NOT have more than {schema.max_length} characters",
                keyword="maxLength",
                params={"limit": schema.max_length}
            )
        yield from _check_enum(path, schema.enum, value)

    elif isinstance(schema, NumberField):
        if schema.integer and not _is_integer(value):
            yield _type_error(path, "integer")
            return
        if not _is_number(value):
            yield _type_error(path, "number")
            return
        if schema.minimum is not None and value < schema.minimum:
            yield ValidationIssue(
                field=_field_name(path),
                message=f"must be >= {schema.minimum}",
                keyword="minimum",
                params={"comparison": ">=", "limit": schema.minimum}
            )
        if schema.maximum is not None and value > schema.maximum:
            yield ValidationIssue(
                field=_field_name(path),
                message=f"must be <= {schema.maximum}",
                keyword="maximum",
                params={"comparison": "<=", "limit": schema.maximum}
            )
        yield from _check_enum(path, schema.enum, value)

    elif isinstance(schema, BooleanField):
        if not isinstance(value, bool):
            yield _type_error(path, "boolean")

    elif isinstance(schema, ObjectField):
        if not isinstance(value, dict):
            yield _type_error(path, "object")
            return
        for name in schema.required:
            if name not in value:
                # В отличие от указателя на родителя, сообщаем путь самого поля
                yield ValidationIssue(
                    field=_field_name(path + (name,)),
                    message=f"must have required property '{name}'",
                    keyword="required",
                    params={"missingProperty": name}
                )
        for name, item in value.items():
            if name in schema.properties:
                yield from _validate(schema.properties[name], item, path + (name,))
            elif schema.additional is False:
                yield ValidationIssue(
                    field=_field_name(path),
                    message="must NOT have additional properties",
                    keyword="additionalProperties",
                    params={"additionalProperty": name}
                )
            elif schema.additional is not True:
                yield from _validate(schema.additional, item, path + (name,))

    elif isinstance(schema, ArrayField):
        if not isinstance(value, list):
            yield _type_error(path, "array")
            return
        if schema.min_items is not None and len(value) < schema.min_items:
            yield ValidationIssue(
                field=_field_name(path),
                message=f"must NOT have fewer than {schema.min_items} items",
                keyword="minItems",
                params={"limit": schema.min_items}
            )
        if schema.max_items is not None and len(value) > schema.max_items:
            yield ValidationIssue(
                field=_field_name(path),
                message=f"must NOT have more than {schema.max_items} items",
                keyword="maxItems",
                params={"limit": schema.max_items}
            )
        if schema.items is not None:
            for index, item in enumerate(value):
                yield from _validate(schema.items, item, path + (str(index),))


def validate_json(schema: SchemaField, value: Any) -> ValidationOutcome:
    """Проверка значения по разобранной схеме, собирает все ошибки"""
    errors = list(_validate(schema, value, ()))
    return ValidationOutcome(valid=not errors, errors=errors)


_META_SCHEMA_FIELD = parse_schema(META_SCHEMA)


class SchemaValidator:
    """Проверка кандидата по схеме, на которую ссылается документ"""

    def __init__(self, document_repository: DocumentRepository, meta_schema_id: Optional[uuid.UUID] = None):
        self.document_repository = document_repository
        self.meta_schema_id = meta_schema_id or settings.meta_schema_id

    def is_meta_schema(self, schema_id: Optional[uuid.UUID]) -> bool:
        return schema_id is not None and schema_id == self.meta_schema_id

    async def resolve(self, schema_id: uuid.UUID) -> SchemaField:
        """Получение схемы (активная таблица, затем архив)"""
        if self.is_meta_schema(schema_id):
            return _META_SCHEMA_FIELD

        schema_document = await self.document_repository.get_any(schema_id)
        if schema_document is None:
            raise NotFoundError(f"Schema {schema_id} not found")

        return parse_schema(schema_document.json)

    async def validate(self, candidate: Any, schema_id: Optional[uuid.UUID]) -> ValidationOutcome:
        if schema_id is None:
            return ValidationOutcome(valid=True)

        schema = await self.resolve(schema_id)
        return validate_json(schema, candidate)
