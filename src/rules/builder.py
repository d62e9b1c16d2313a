"""
Pure edit operations over a condition group tree

Every operation takes the whole tree and returns a new one; the input is never
modified. Operations that target a node missing from the tree log a warning and
hand back the input tree unchanged.
"""
import logging
import uuid
from typing import Any, Callable, Iterator, Mapping, Optional, Set

from pydantic import ValidationError

from .fields import OPERATIONS, VALUELESS_OPERATIONS, default_value, field_type, is_known_field
from .schema import Condition, ConditionGroup, Node

logger = logging.getLogger(__name__)

DEFAULT_FIELD = 'total_spend'
DEFAULT_OPERATION = 'greaterThan'
DEFAULT_VALUE = 0


def generate_id() -> str:
    """Generate a short random node identifier"""
    return uuid.uuid4().hex[:9]


def unique_id(taken: Set[str]) -> str:
    while True:
        candidate = generate_id()
        if candidate not in taken:
            taken.add(candidate)
            return candidate


def default_condition(condition_id: str) -> Condition:
    return Condition(id=condition_id, field=DEFAULT_FIELD, operation=DEFAULT_OPERATION, value=DEFAULT_VALUE)


def default_rule() -> ConditionGroup:
    """The rule a freshly opened builder starts from"""
    return ConditionGroup(id='root', operator='AND', conditions=[default_condition('1')])


def iter_nodes(tree: ConditionGroup) -> Iterator[Node]:
    """Walk the tree depth first, yielding groups before their children"""
    yield tree
    for child in tree.conditions:
        if isinstance(child, ConditionGroup):
            yield from iter_nodes(child)
        else:
            yield child


def collect_ids(tree: ConditionGroup) -> Set[str]:
    return {node.id for node in iter_nodes(tree)}


def find_node(tree: ConditionGroup, node_id: str) -> Optional[Node]:
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def find_group(tree: ConditionGroup, group_id: str) -> Optional[ConditionGroup]:
    node = find_node(tree, group_id)
    return node if isinstance(node, ConditionGroup) else None


def find_parent(tree: ConditionGroup, node_id: str) -> Optional[ConditionGroup]:
    """Get the group that directly holds node_id, or None for the root and unknown ids"""
    for node in iter_nodes(tree):
        if isinstance(node, ConditionGroup) and any(child.id == node_id for child in node.conditions):
            return node
    return None


def _update_group(
    group: ConditionGroup,
    group_id: str,
    update: Callable[[ConditionGroup], ConditionGroup],
) -> ConditionGroup:
    if group.id == group_id:
        return update(group)
    return group.model_copy(update={
        'conditions': [
            _update_group(child, group_id, update) if isinstance(child, ConditionGroup) else child
            for child in group.conditions
        ]
    })


def add_condition(tree: ConditionGroup, group_id: str) -> ConditionGroup:
    """Append a default condition to the group with group_id"""
    if find_group(tree, group_id) is None:
        logger.warning(f"add_condition: group {group_id} not found, tree left unchanged")
        return tree

    taken = collect_ids(tree)
    return _update_group(tree, group_id, lambda group: group.model_copy(update={
        'conditions': [*group.conditions, default_condition(unique_id(taken))]
    }))


def add_group(tree: ConditionGroup, parent_group_id: str) -> ConditionGroup:
    """Append a nested AND group holding one default condition"""
    if find_group(tree, parent_group_id) is None:
        logger.warning(f"add_group: group {parent_group_id} not found, tree left unchanged")
        return tree

    taken = collect_ids(tree)

    def append(group: ConditionGroup) -> ConditionGroup:
        nested = ConditionGroup(
            id=unique_id(taken),
            operator='AND',
            conditions=[default_condition(unique_id(taken))],
        )
        return group.model_copy(update={'conditions': [*group.conditions, nested]})

    return _update_group(tree, parent_group_id, append)


def remove(tree: ConditionGroup, group_id: str, item_id: str) -> ConditionGroup:
    """Remove a direct child from a group; an emptied group is kept"""
    group = find_group(tree, group_id)
    if group is None or not any(child.id == item_id for child in group.conditions):
        logger.warning(f"remove: {item_id} is not a child of group {group_id}, tree left unchanged")
        return tree

    return _update_group(tree, group_id, lambda g: g.model_copy(update={
        'conditions': [child for child in g.conditions if child.id != item_id]
    }))


def remove_node(tree: ConditionGroup, node_id: str) -> ConditionGroup:
    """Remove a condition or nested group wherever it sits; the root cannot be removed"""
    parent = find_parent(tree, node_id)
    if parent is None:
        logger.warning(f"remove_node: {node_id} has no parent group, tree left unchanged")
        return tree
    return remove(tree, parent.id, node_id)


def set_combinator(tree: ConditionGroup, group_id: str, operator: str) -> ConditionGroup:
    """Set a group's AND/OR combinator"""
    if operator not in ('AND', 'OR'):
        logger.warning(f"set_combinator: invalid combinator {operator!r}, tree left unchanged")
        return tree
    if find_group(tree, group_id) is None:
        logger.warning(f"set_combinator: group {group_id} not found, tree left unchanged")
        return tree

    return _update_group(tree, group_id, lambda group: group.model_copy(update={'operator': operator}))


def _apply_patch(condition: Condition, patch: Mapping[str, Any]) -> Condition:
    for key, value in patch.items():
        if key == 'field':
            if not is_known_field(value):
                logger.warning(f"set_condition: unknown field {value!r} ignored")
                continue
            new_type = field_type(value)
            condition = condition.model_copy(update={
                'field': value,
                'operation': OPERATIONS[new_type][0].value,
                'value': default_value(new_type),
            })
        elif key == 'operation':
            if is_known_field(condition.field):
                offered = [option.value for option in OPERATIONS[field_type(condition.field)]]
                if value not in offered:
                    logger.warning(f"set_condition: operation {value!r} not offered for {condition.field}, ignored")
                    continue
            update = {'operation': value}
            # Empty checks carry no operand
            if value in VALUELESS_OPERATIONS:
                update['value'] = ''
            condition = condition.model_copy(update=update)
        elif key == 'value':
            try:
                condition = Condition.model_validate({**condition.model_dump(), 'value': value})
            except ValidationError:
                logger.warning(f"set_condition: value {value!r} is not a scalar operand, ignored")
        else:
            logger.warning(f"set_condition: unsupported key {key!r} ignored")
    return condition


def set_condition(
    tree: ConditionGroup,
    group_id: str,
    condition_id: str,
    patch: Mapping[str, Any],
) -> ConditionGroup:
    """Apply a patch of field/operation/value updates to a leaf condition

    Keys are applied in order. Changing the field resets the operation and value
    to the new field type's defaults; switching to isEmpty/isNotEmpty clears the
    value.
    """
    group = find_group(tree, group_id)
    if group is None or not any(
        isinstance(child, Condition) and child.id == condition_id for child in group.conditions
    ):
        logger.warning(f"set_condition: condition {condition_id} not in group {group_id}, tree left unchanged")
        return tree

    return _update_group(tree, group_id, lambda g: g.model_copy(update={
        'conditions': [
            _apply_patch(child, patch) if isinstance(child, Condition) and child.id == condition_id else child
            for child in g.conditions
        ]
    }))
