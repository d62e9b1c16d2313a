"""
Test suite for the condition group tree builder.

Test Coverage:

1. Structural edits:
   - add_condition / add_group on the root and on nested groups
   - remove and remove_node, including emptying a group (no auto-pruning)
   - set_combinator, including idempotence

2. Condition edits (set_condition):
   - field changes reset operation and value for every field pair
   - isEmpty / isNotEmpty clear the value
   - operations not offered for the field type are ignored
   - non-scalar values are ignored

3. Totality:
   - unknown group / condition ids return the input tree unchanged
   - inputs are never modified
   - new identifiers are unique within the tree
"""

import itertools
import unittest
from unittest.mock import patch

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.rules.builder import (
    add_condition,
    add_group,
    collect_ids,
    default_rule,
    find_group,
    find_node,
    iter_nodes,
    remove,
    remove_node,
    set_combinator,
    set_condition,
)
from src.rules.convert import dump_rules, parse_rules, rules_to_json
from src.rules.fields import OPERATIONS, TREE_FIELDS, FieldType, field_type
from src.rules.schema import Condition, ConditionGroup

TODAY = '2026-01-15'


def two_level_tree() -> ConditionGroup:
    return ConditionGroup(id='root', operator='AND', conditions=[
        Condition(id='c1', field='total_spend', operation='greaterThan', value=100),
        ConditionGroup(id='g1', operator='OR', conditions=[
            Condition(id='c2', field='tags', operation='contains', value='vip'),
        ]),
    ])


class TestTreeStructure(unittest.TestCase):

    def test_default_rule(self):
        """A fresh builder starts with a single spend > 0 condition"""
        tree = default_rule()
        self.assertEqual(tree.id, 'root')
        self.assertEqual(tree.operator, 'AND')
        self.assertEqual(len(tree.conditions), 1)
        condition = tree.conditions[0]
        self.assertEqual((condition.field, condition.operation, condition.value), ('total_spend', 'greaterThan', 0))

    def test_add_condition(self):
        """Adding a condition appends one default condition to the target group"""
        for group_id in ('root', 'g1'):
            with self.subTest(group_id=group_id):
                tree = two_level_tree()
                before = len(find_group(tree, group_id).conditions)

                result = add_condition(tree, group_id)

                group = find_group(result, group_id)
                self.assertEqual(len(group.conditions), before + 1)
                new = group.conditions[-1]
                self.assertIsInstance(new, Condition)
                self.assertEqual(new.field, 'total_spend')
                self.assertEqual(new.operation, 'greaterThan')
                self.assertEqual(new.value, 0)
                self.assertNotIn(new.id, collect_ids(tree))

    def test_add_condition_unknown_group(self):
        """Targeting a missing group leaves the tree untouched"""
        tree = two_level_tree()
        self.assertIs(add_condition(tree, 'missing'), tree)
        self.assertIs(add_condition(tree, 'c1'), tree)  # a leaf is not a group

    def test_add_group(self):
        """Adding a group appends an AND group holding one default condition"""
        tree = two_level_tree()

        result = add_group(tree, 'g1')

        nested = find_group(result, 'g1').conditions[-1]
        self.assertIsInstance(nested, ConditionGroup)
        self.assertEqual(nested.operator, 'AND')
        self.assertEqual(len(nested.conditions), 1)
        self.assertEqual(nested.conditions[0].operation, 'greaterThan')

    def test_end_to_end_nesting(self):
        """Default tree -> add group on root -> add condition on the new group"""
        tree = default_rule()
        tree = add_group(tree, 'root')
        nested_id = tree.conditions[1].id
        tree = add_condition(tree, nested_id)

        self.assertEqual(len(tree.conditions), 2)
        self.assertEqual(len(tree.conditions[1].conditions), 2)

    def test_end_to_end_nesting_counts_new_group_children(self):
        """The new group holds its default condition before any further edits"""
        tree = add_group(default_rule(), 'root')
        self.assertEqual(len(tree.conditions), 2)
        self.assertEqual(len(tree.conditions[1].conditions), 1)

    def test_remove_last_child_keeps_group(self):
        """Removing a group's only child leaves an empty group in place"""
        tree = two_level_tree()

        result = remove(tree, 'g1', 'c2')

        group = find_group(result, 'g1')
        self.assertIsNotNone(group)
        self.assertEqual(group.conditions, [])
        self.assertEqual(len(result.conditions), 2)

    def test_remove_nested_group(self):
        tree = two_level_tree()
        result = remove(tree, 'root', 'g1')
        self.assertIsNone(find_node(result, 'g1'))
        self.assertIsNone(find_node(result, 'c2'))

    def test_remove_requires_direct_child(self):
        """Items are only removed from the group that holds them"""
        tree = two_level_tree()
        self.assertIs(remove(tree, 'root', 'c2'), tree)
        self.assertIs(remove(tree, 'missing', 'c1'), tree)

    def test_remove_node(self):
        tree = two_level_tree()
        result = remove_node(tree, 'c2')
        self.assertEqual(find_group(result, 'g1').conditions, [])
        self.assertIs(remove_node(tree, 'root'), tree)

    def test_set_combinator(self):
        tree = two_level_tree()
        result = set_combinator(tree, 'g1', 'AND')
        self.assertEqual(find_group(result, 'g1').operator, 'AND')
        self.assertEqual(result.operator, 'AND')

    def test_set_combinator_idempotent(self):
        tree = two_level_tree()
        once = set_combinator(tree, 'root', 'AND')
        twice = set_combinator(once, 'root', 'AND')
        self.assertEqual(once.model_dump(), twice.model_dump())

    def test_set_combinator_invalid(self):
        tree = two_level_tree()
        self.assertIs(set_combinator(tree, 'root', 'XOR'), tree)
        self.assertIs(set_combinator(tree, 'missing', 'OR'), tree)

    def test_inputs_not_modified(self):
        """Every operation returns a new tree and leaves its input as it was"""
        tree = two_level_tree()
        snapshot = tree.model_dump()

        add_condition(tree, 'g1')
        add_group(tree, 'root')
        remove(tree, 'g1', 'c2')
        set_combinator(tree, 'g1', 'AND')
        set_condition(tree, 'root', 'c1', {'field': 'email'})

        self.assertEqual(tree.model_dump(), snapshot)

    def test_ids_stay_unique(self):
        tree = default_rule()
        for _ in range(20):
            tree = add_group(tree, 'root')
            tree = add_condition(tree, tree.conditions[-1].id)
        nodes = list(iter_nodes(tree))
        self.assertEqual(len(collect_ids(tree)), len(nodes))


class TestConditionEdits(unittest.TestCase):

    def _single(self, field: str) -> ConditionGroup:
        ftype = field_type(field)
        return ConditionGroup(id='root', operator='AND', conditions=[
            Condition(id='c', field=field, operation=OPERATIONS[ftype][-1].value, value='x'),
        ])

    @patch('src.rules.fields.today', return_value=TODAY)
    def test_field_change_resets_operation_and_value(self, _today):
        """Every (from, to) field pair resets to the new type's first operation and default"""
        expected_defaults = {
            FieldType.NUMBER: 0,
            FieldType.DATE: TODAY,
            FieldType.STRING: '',
            FieldType.ARRAY: '',
        }
        pairs = list(itertools.product(TREE_FIELDS, repeat=2))
        self.assertEqual(len(pairs), 36)

        for from_field, to_field in pairs:
            with self.subTest(from_field=from_field, to_field=to_field):
                result = set_condition(self._single(from_field), 'root', 'c', {'field': to_field})
                condition = result.conditions[0]
                to_type = field_type(to_field)
                self.assertEqual(condition.field, to_field)
                self.assertEqual(condition.operation, OPERATIONS[to_type][0].value)
                self.assertEqual(condition.value, expected_defaults[to_type])

    def test_valueless_operations_clear_value(self):
        for operation in ('isEmpty', 'isNotEmpty'):
            with self.subTest(operation=operation):
                tree = two_level_tree()
                result = set_condition(tree, 'root', 'c1', {'operation': operation})
                condition = find_node(result, 'c1')
                self.assertEqual(condition.operation, operation)
                self.assertEqual(condition.value, '')

    def test_operation_keeps_value(self):
        tree = two_level_tree()
        result = set_condition(tree, 'root', 'c1', {'operation': 'lessThan'})
        condition = find_node(result, 'c1')
        self.assertEqual(condition.operation, 'lessThan')
        self.assertEqual(condition.value, 100)

    def test_operation_not_offered_for_field(self):
        """Number fields have no 'contains'; the edit is ignored"""
        tree = two_level_tree()
        result = set_condition(tree, 'root', 'c1', {'operation': 'contains'})
        self.assertEqual(find_node(result, 'c1').operation, 'greaterThan')

    def test_value_update(self):
        tree = two_level_tree()
        result = set_condition(tree, 'g1', 'c2', {'value': 'gold'})
        self.assertEqual(find_node(result, 'c2').value, 'gold')

    def test_non_scalar_value_ignored(self):
        """Lists, mappings and None are not operands; the tree still round-trips"""
        for value in ([1, 2], {'min': 1}, None):
            with self.subTest(value=value):
                tree = two_level_tree()
                result = set_condition(tree, 'root', 'c1', {'value': value})
                self.assertEqual(find_node(result, 'c1').value, 100)
                restored = parse_rules(rules_to_json(result))
                self.assertEqual(dump_rules(restored), dump_rules(result))

    def test_patch_applied_in_order(self):
        """A value following a field change survives the reset"""
        tree = two_level_tree()
        result = set_condition(tree, 'root', 'c1', {'field': 'email', 'value': 'a@b.com'})
        condition = find_node(result, 'c1')
        self.assertEqual((condition.field, condition.operation, condition.value), ('email', 'equals', 'a@b.com'))

    def test_unknown_field_ignored(self):
        tree = two_level_tree()
        result = set_condition(tree, 'root', 'c1', {'field': 'favourite_colour'})
        self.assertEqual(find_node(result, 'c1').field, 'total_spend')

    def test_condition_must_belong_to_group(self):
        tree = two_level_tree()
        self.assertIs(set_condition(tree, 'root', 'c2', {'value': 1}), tree)
        self.assertIs(set_condition(tree, 'root', 'g1', {'value': 1}), tree)
        self.assertIs(set_condition(tree, 'missing', 'c1', {'value': 1}), tree)


if __name__ == '__main__':
    unittest.main()
