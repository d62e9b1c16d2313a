"""
Edit operations over the flat segment rule list
"""
import logging
from typing import Any

from pydantic import ValidationError

from .fields import BETWEEN, SEGMENT_OPERATORS, default_value, field_type, is_known_field
from .schema import SegmentCondition, SegmentRules

logger = logging.getLogger(__name__)


def default_segment_condition() -> SegmentCondition:
    return SegmentCondition(field='total_spend', operator='>', value=0)


def default_segment_rules() -> SegmentRules:
    return SegmentRules(logic='AND', conditions=[default_segment_condition()])


def add_rule(rules: SegmentRules) -> SegmentRules:
    return rules.model_copy(update={'conditions': [*rules.conditions, default_segment_condition()]})


def remove_rule(rules: SegmentRules, index: int) -> SegmentRules:
    """Remove the condition at index; the list is allowed to become empty"""
    if not 0 <= index < len(rules.conditions):
        logger.warning(f"remove_rule: index {index} out of range, rules left unchanged")
        return rules
    return rules.model_copy(update={
        'conditions': [c for i, c in enumerate(rules.conditions) if i != index]
    })


def toggle_logic(rules: SegmentRules) -> SegmentRules:
    return rules.model_copy(update={'logic': 'OR' if rules.logic == 'AND' else 'AND'})


def _change_field(condition: SegmentCondition, field: str) -> SegmentCondition:
    if not is_known_field(field):
        logger.warning(f"update_rule: unknown field {field!r} ignored")
        return condition
    new_type = field_type(field)
    return SegmentCondition(
        field=field,
        operator=SEGMENT_OPERATORS[new_type][0].value,
        value=default_value(new_type),
    )


def _change_operator(condition: SegmentCondition, operator: str) -> SegmentCondition:
    if is_known_field(condition.field):
        offered = [option.value for option in SEGMENT_OPERATORS[field_type(condition.field)]]
        if operator not in offered:
            logger.warning(f"update_rule: operator {operator!r} not offered for {condition.field}, ignored")
            return condition

    current = condition.value
    if operator == BETWEEN:
        value = current if isinstance(current, tuple) else (current, current)
    else:
        # Collapsing a range keeps its lower bound
        value = current[0] if isinstance(current, tuple) else current
    return condition.model_copy(update={'operator': operator, 'value': value})


def _change_value(condition: SegmentCondition, value: Any) -> SegmentCondition:
    # Only 'between' carries a [low, high] pair
    is_pair = isinstance(value, (list, tuple))
    if is_pair != (condition.operator == BETWEEN):
        logger.warning(f"update_rule: value {value!r} does not fit operator {condition.operator!r}, ignored")
        return condition
    try:
        return SegmentCondition.model_validate({**condition.model_dump(), 'value': value})
    except ValidationError:
        logger.warning(f"update_rule: invalid value {value!r} ignored")
        return condition


def update_rule(rules: SegmentRules, index: int, key: str, value: Any) -> SegmentRules:
    """Update the field, operator or value of the condition at index

    A new field re-derives the operator and default value from the field type.
    Moving onto 'between' turns the scalar value into a [value, value] pair;
    moving off it keeps the first element.
    """
    if not 0 <= index < len(rules.conditions):
        logger.warning(f"update_rule: index {index} out of range, rules left unchanged")
        return rules

    condition = rules.conditions[index]
    if key == 'field':
        updated = _change_field(condition, value)
    elif key == 'operator':
        updated = _change_operator(condition, value)
    elif key == 'value':
        updated = _change_value(condition, value)
    else:
        logger.warning(f"update_rule: unsupported key {key!r} ignored")
        return rules

    if updated is condition:
        return rules
    conditions = list(rules.conditions)
    conditions[index] = updated
    return rules.model_copy(update={'conditions': conditions})
