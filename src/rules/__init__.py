"""
Audience targeting rules: model, builders and serialization
"""
from .builder import (
    add_condition,
    add_group,
    default_rule,
    remove,
    remove_node,
    set_combinator,
    set_condition,
)
from .convert import dump_rules, parse_rules, segment_rules_to_tree, tree_to_segment_rules
from .errors import RuleConversionError, RuleError, SubmissionInProgressError, UnknownFieldError
from .fields import FieldType, field_type
from .schema import CampaignData, Condition, ConditionGroup, SegmentCondition, SegmentData, SegmentRules
from .segment_builder import add_rule, default_segment_rules, remove_rule, toggle_logic, update_rule
from .session import RuleSession

__all__ = [
    'CampaignData',
    'Condition',
    'ConditionGroup',
    'FieldType',
    'RuleConversionError',
    'RuleError',
    'RuleSession',
    'SegmentCondition',
    'SegmentData',
    'SegmentRules',
    'SubmissionInProgressError',
    'UnknownFieldError',
    'add_condition',
    'add_group',
    'add_rule',
    'default_rule',
    'default_segment_rules',
    'dump_rules',
    'field_type',
    'parse_rules',
    'remove',
    'remove_node',
    'remove_rule',
    'segment_rules_to_tree',
    'set_combinator',
    'set_condition',
    'toggle_logic',
    'tree_to_segment_rules',
    'update_rule',
]
