"""
Wire serialization for both rule shapes and converters between them
"""
import json
import logging
from typing import Any, Dict, Mapping, Union

from .builder import unique_id
from .errors import RuleConversionError
from .schema import Condition, ConditionGroup, Rule, SegmentCondition, SegmentRules

logger = logging.getLogger(__name__)

# Flat operator -> condition group operation, for operators both shapes share
SEGMENT_TO_TREE_OPERATION: Dict[str, str] = {
    '=': 'equals',
    '>': 'greaterThan',
    '<': 'lessThan',
    'contains': 'contains',
    'not_contains': 'notContains',
}
TREE_TO_SEGMENT_OPERATOR: Dict[str, str] = {v: k for k, v in SEGMENT_TO_TREE_OPERATION.items()}


def is_segment_rules(data: Mapping[str, Any]) -> bool:
    """Tell the flat shape apart from the tree shape by its 'logic' key"""
    return 'logic' in data


def parse_tree(data: Union[str, Mapping[str, Any]]) -> ConditionGroup:
    if isinstance(data, str):
        return ConditionGroup.model_validate_json(data)
    return ConditionGroup.model_validate(data)


def parse_segment_rules(data: Union[str, Mapping[str, Any]]) -> SegmentRules:
    if isinstance(data, str):
        return SegmentRules.model_validate_json(data)
    return SegmentRules.model_validate(data)


def parse_rules(data: Union[str, Mapping[str, Any], Rule]) -> Rule:
    """Load either wire shape, checking structure only"""
    if isinstance(data, (ConditionGroup, SegmentRules)):
        return data
    if isinstance(data, str):
        data = json.loads(data)
    if is_segment_rules(data):
        return parse_segment_rules(data)
    return parse_tree(data)


def dump_rules(rule: Rule) -> Dict[str, Any]:
    """Serialize a rule to its JSON-ready wire dict"""
    return rule.model_dump(mode='json')


def rules_to_json(rule: Rule, indent: int = None) -> str:
    return rule.model_dump_json(indent=indent)


def segment_rules_to_tree(rules: SegmentRules, root_id: str = 'root') -> ConditionGroup:
    """Express a flat rule list as a single-level condition group

    Raises RuleConversionError for operators the tree shape has no operation for,
    and for range values.
    """
    taken = {root_id}
    conditions = []
    for condition in rules.conditions:
        operation = SEGMENT_TO_TREE_OPERATION.get(condition.operator)
        if operation is None:
            raise RuleConversionError(
                f"Operator {condition.operator!r} on {condition.field} has no condition group equivalent"
            )
        if isinstance(condition.value, tuple):
            raise RuleConversionError(f"Range value on {condition.field} has no condition group equivalent")
        conditions.append(Condition(
            id=unique_id(taken),
            field=condition.field,
            operation=operation,
            value=condition.value,
        ))
    return ConditionGroup(id=root_id, operator=rules.logic, conditions=conditions)


def tree_to_segment_rules(tree: ConditionGroup) -> SegmentRules:
    """Flatten a single-level condition group into a segment rule list

    Raises RuleConversionError if the tree nests groups or uses an operation the
    flat shape cannot express.
    """
    conditions = []
    for child in tree.conditions:
        if isinstance(child, ConditionGroup):
            raise RuleConversionError(f"Nested group {child.id} cannot be flattened")
        operator = TREE_TO_SEGMENT_OPERATOR.get(child.operation)
        if operator is None:
            raise RuleConversionError(
                f"Operation {child.operation!r} on {child.field} has no segment rule equivalent"
            )
        conditions.append(SegmentCondition(field=child.field, operator=operator, value=child.value))
    logger.debug(f"Flattened tree {tree.id} into {len(conditions)} segment conditions")
    return SegmentRules(logic=tree.operator, conditions=conditions)


def to_tree(rule: Rule) -> ConditionGroup:
    """Get the condition group form of either shape"""
    if isinstance(rule, ConditionGroup):
        return rule
    return segment_rules_to_tree(rule)

