"""
Field registry and the field type -> operation compatibility tables
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, NamedTuple, Tuple, Union

from .errors import UnknownFieldError


class FieldType(str, Enum):
    """Value type of a customer field"""
    NUMBER = 'number'
    DATE = 'date'
    STRING = 'string'
    ARRAY = 'array'


class Option(NamedTuple):
    """A selectable value with its display label"""
    value: str
    label: str


class FieldSpec(NamedTuple):
    name: str
    label: str
    type: FieldType


# Every field either rule shape may reference
FIELD_SPECS: Dict[str, FieldSpec] = {
    spec.name: spec for spec in (
        FieldSpec('total_spend', 'Total Spend', FieldType.NUMBER),
        FieldSpec('total_visits', 'Total Visits', FieldType.NUMBER),
        FieldSpec('last_visit_date', 'Last Visit Date', FieldType.DATE),
        FieldSpec('tags', 'Tags', FieldType.ARRAY),
        FieldSpec('name', 'Name', FieldType.STRING),
        FieldSpec('first_name', 'First Name', FieldType.STRING),
        FieldSpec('last_name', 'Last Name', FieldType.STRING),
        FieldSpec('email', 'Email', FieldType.STRING),
    )
}

# Fields offered by the nested condition-group builder
TREE_FIELDS: Tuple[str, ...] = ('email', 'name', 'total_spend', 'total_visits', 'last_visit_date', 'tags')

# Fields offered by the flat segment builder
SEGMENT_FIELDS: Tuple[str, ...] = (
    'total_spend', 'total_visits', 'last_visit_date', 'tags', 'first_name', 'last_name', 'email',
)

# Operations that take no operand
VALUELESS_OPERATIONS = frozenset({'isEmpty', 'isNotEmpty'})

BETWEEN = 'between'


def _operations(field_type: FieldType) -> List[Option]:
    if field_type is FieldType.NUMBER:
        return [
            Option('equals', 'Equals'),
            Option('notEquals', 'Not Equals'),
            Option('greaterThan', 'Greater Than'),
            Option('lessThan', 'Less Than'),
            Option('isEmpty', 'Is Empty'),
            Option('isNotEmpty', 'Is Not Empty'),
        ]
    if field_type is FieldType.DATE:
        return [
            Option('equals', 'Equals'),
            Option('notEquals', 'Not Equals'),
            Option('greaterThan', 'After'),
            Option('lessThan', 'Before'),
            Option('isEmpty', 'Is Empty'),
            Option('isNotEmpty', 'Is Not Empty'),
        ]
    if field_type is FieldType.STRING:
        return [
            Option('equals', 'Equals'),
            Option('notEquals', 'Not Equals'),
            Option('contains', 'Contains'),
            Option('notContains', 'Not Contains'),
            Option('isEmpty', 'Is Empty'),
            Option('isNotEmpty', 'Is Not Empty'),
        ]
    if field_type is FieldType.ARRAY:
        return [
            Option('contains', 'Contains'),
            Option('notContains', 'Not Contains'),
            Option('isEmpty', 'Is Empty'),
            Option('isNotEmpty', 'Is Not Empty'),
        ]
    raise ValueError(f"Unhandled field type: {field_type}")


def _segment_operators(field_type: FieldType) -> List[Option]:
    if field_type is FieldType.NUMBER:
        return [
            Option('=', 'Equals'),
            Option('>', 'Greater than'),
            Option('<', 'Less than'),
            Option('>=', 'Greater than or equal'),
            Option('<=', 'Less than or equal'),
            Option(BETWEEN, 'Between'),
        ]
    if field_type is FieldType.DATE:
        return [
            Option('=', 'On date'),
            Option('>', 'After'),
            Option('<', 'Before'),
            Option('>=', 'On or after'),
            Option('<=', 'On or before'),
            Option(BETWEEN, 'Between'),
        ]
    if field_type is FieldType.STRING:
        return [
            Option('=', 'Equals'),
            Option('contains', 'Contains'),
            Option('starts_with', 'Starts with'),
            Option('ends_with', 'Ends with'),
        ]
    if field_type is FieldType.ARRAY:
        return [
            Option('contains', 'Contains'),
            Option('not_contains', 'Does not contain'),
        ]
    raise ValueError(f"Unhandled field type: {field_type}")


OPERATIONS: Dict[FieldType, List[Option]] = {t: _operations(t) for t in FieldType}
SEGMENT_OPERATORS: Dict[FieldType, List[Option]] = {t: _segment_operators(t) for t in FieldType}


def field_type(field: str) -> FieldType:
    """Get the type of a registered field, raising UnknownFieldError otherwise"""
    try:
        return FIELD_SPECS[field].type
    except KeyError:
        raise UnknownFieldError(field) from None


def is_known_field(field: str) -> bool:
    return field in FIELD_SPECS


def operations_for(field: str) -> List[Option]:
    """Operations the condition-group builder offers for a field"""
    return OPERATIONS[field_type(field)]


def segment_operators_for(field: str) -> List[Option]:
    """Operators the flat segment builder offers for a field"""
    return SEGMENT_OPERATORS[field_type(field)]


def today() -> str:
    """Today's UTC date as YYYY-MM-DD"""
    return datetime.now(timezone.utc).date().isoformat()


def default_value(field_type: FieldType) -> Union[int, str]:
    """Default operand for a freshly selected field of the given type"""
    if field_type is FieldType.NUMBER:
        return 0
    if field_type is FieldType.DATE:
        return today()
    return ''
