"""
Schemas for audience targeting rules and the payloads that carry them
"""
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag

Combinator = Literal['AND', 'OR']

# Operand of a single condition
Scalar = Union[str, int, float, bool]

# Operand of a flat segment condition; pairs are used by the 'between' operator
Operand = Union[int, float, str]
Range = Tuple[Operand, Operand]


class Condition(BaseModel):
    """Leaf of a condition group tree"""
    model_config = ConfigDict(frozen=True)

    id: str
    field: str
    operation: str
    value: Scalar


def _node_kind(node: Any) -> str:
    # Groups are told apart from leaves by their combinator
    if isinstance(node, dict):
        return 'group' if 'operator' in node else 'condition'
    return 'group' if hasattr(node, 'operator') else 'condition'


class ConditionGroup(BaseModel):
    """AND/OR node of a condition group tree"""
    model_config = ConfigDict(frozen=True)

    id: str
    operator: Combinator
    conditions: List[
        Annotated[
            Union[
                Annotated[Condition, Tag('condition')],
                Annotated['ConditionGroup', Tag('group')],
            ],
            Discriminator(_node_kind),
        ]
    ] = Field(default_factory=list)


ConditionGroup.model_rebuild()

Node = Union[Condition, ConditionGroup]


class SegmentCondition(BaseModel):
    """A single predicate of the flat segment rule list"""
    model_config = ConfigDict(frozen=True)

    field: str
    operator: str
    value: Union[Operand, Range]


class SegmentRules(BaseModel):
    """Flat list of conditions joined by one combinator"""
    model_config = ConfigDict(frozen=True)

    logic: Combinator
    conditions: List[SegmentCondition] = Field(default_factory=list)


# Either wire shape; the backend accepts both depending on the entry point
Rule = Union[ConditionGroup, SegmentRules]


class SegmentData(BaseModel):
    """Payload for creating or updating a segment"""
    name: str
    description: Optional[str] = None
    rules: Optional[Union[SegmentRules, ConditionGroup]] = None
    is_dynamic: Optional[bool] = None
    tags: Optional[List[str]] = None


class CampaignData(BaseModel):
    """Payload for creating or updating a campaign"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    segment_id: str = Field(alias='segmentId')
    message_template: str = Field(alias='messageTemplate')
    objective: Optional[str] = None
    status: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

