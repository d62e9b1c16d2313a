"""
Builder session: holds the rule being edited and hands it to preview/submit collaborators
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .builder import default_rule
from .convert import dump_rules, parse_rules
from .errors import RuleError, SubmissionInProgressError
from .schema import Rule

logger = logging.getLogger(__name__)

WireRule = Dict[str, Any]
PreviewFn = Callable[[WireRule], Any]
SubmitFn = Callable[[WireRule], Any]


def _payload(response: Any) -> Any:
    # The API wraps results as {success, data, message}
    if isinstance(response, Mapping) and isinstance(response.get('data'), Mapping):
        return response['data']
    return response


def audience_size_of(response: Any) -> int:
    """Pull the audience size out of a preview response

    Accepts a bare number, or a mapping carrying audienceSize, total or count,
    either at the top level or under 'data'. Anything else counts as 0.
    """
    if isinstance(response, bool):
        return 0
    if isinstance(response, (int, float)):
        return int(response)
    for candidate in (response, _payload(response)):
        if isinstance(candidate, Mapping):
            for key in ('audienceSize', 'total', 'count'):
                if candidate.get(key):
                    return int(candidate[key])
    return 0


def created_id_of(response: Any) -> Optional[str]:
    """Pull the new record's id out of a create response"""
    if isinstance(response, (str, int)) and not isinstance(response, bool):
        return str(response)
    payload = _payload(response)
    if isinstance(payload, Mapping) and payload.get('id') is not None:
        return str(payload['id'])
    if isinstance(response, Mapping) and response.get('id') is not None:
        return str(response['id'])
    return None


class RuleSession:
    """Rule being edited, with undo/redo and the preview/submit boundary

    Edits go through apply() with any builder operation. Preview and submit
    receive the serialized rule exactly as held; nothing is evaluated or
    validated here. Errors raised by either collaborator propagate to the caller.
    """

    def __init__(
        self,
        rule: Optional[Union[Rule, Mapping[str, Any]]] = None,
        preview: Optional[PreviewFn] = None,
        submit: Optional[SubmitFn] = None,
    ):
        self._rule: Rule = parse_rules(rule) if rule is not None else default_rule()
        self._undo: List[Rule] = []
        self._redo: List[Rule] = []
        self._preview = preview
        self._submit = submit
        self._submit_lock = threading.Lock()
        self.audience_size: Optional[int] = None

    @property
    def rule(self) -> Rule:
        return self._rule

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def submitting(self) -> bool:
        return self._submit_lock.locked()

    def _replace(self, rule: Rule) -> None:
        self._undo.append(self._rule)
        self._redo.clear()
        self._rule = rule
        # A stale preview no longer describes the rule
        self.audience_size = None

    def apply(self, operation: Callable[..., Rule], *args, **kwargs) -> Rule:
        """Run a builder operation against the current rule and keep the result"""
        updated = operation(self._rule, *args, **kwargs)
        if updated is not self._rule:
            self._replace(updated)
        return self._rule

    def load(self, rule: Union[Rule, Mapping[str, Any], str]) -> Rule:
        """Replace the rule with a stored or suggested one; undo returns to the previous rule"""
        self._replace(parse_rules(rule))
        logger.info(f"Loaded {type(self._rule).__name__} into rule session")
        return self._rule

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self._rule)
        self._rule = self._undo.pop()
        self.audience_size = None
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self._rule)
        self._rule = self._redo.pop()
        self.audience_size = None
        return True

    def to_wire(self) -> WireRule:
        return dump_rules(self._rule)

    def preview(self) -> int:
        """Ask the preview collaborator for the audience size of the current rule"""
        if self._preview is None:
            raise RuleError("No preview function configured")
        response = self._preview(self.to_wire())
        self.audience_size = audience_size_of(response)
        logger.info(f"Audience preview: {self.audience_size} customers")
        return self.audience_size

    def submit(self) -> Optional[str]:
        """Hand the current rule to the submit collaborator and return the created id

        Raises SubmissionInProgressError if a submit is already in flight.
        """
        if self._submit is None:
            raise RuleError("No submit function configured")
        if not self._submit_lock.acquire(blocking=False):
            raise SubmissionInProgressError("A submission is already in progress")
        try:
            response = self._submit(self.to_wire())
        finally:
            self._submit_lock.release()
        created_id = created_id_of(response)
        logger.info(f"Rule submitted, created id {created_id}")
        return created_id
