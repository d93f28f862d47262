"""
Cross-Field Business Rule Engine

Business rules are entity-specific invariants checked only after every
individual field has coerced successfully. Each rule declares the set of
fields it reads; in update mode a rule only fires when at least one of those
fields is part of the update payload.

A rule's check function receives the coerced record and a RuleContext and
raises BusinessRuleError when the invariant does not hold. The engine runs
every applicable rule, even after earlier failures, and aggregates all
failures into one ErrorMap.

Example:
    def end_after_start(record, context):
        start, end = record.get('event_date'), record.get('end_date')
        if start is not None and end is not None and end <= start:
            raise BusinessRuleError('end_date', 'End date must be after the event start date')

    rule = BusinessRule('end_after_start', {'event_date', 'end_date'}, end_after_start)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

import structlog

from .exceptions import BusinessRuleError
from .models import ErrorMap

if TYPE_CHECKING:
    from ..config.settings import ValidationSettings

logger = structlog.get_logger("business.rules")


@dataclass(frozen=True)
class RuleContext:
    """
    Read-only inputs a rule may consult besides the record itself.

    Attributes:
        now: Clock reading taken once per validation call
        settings: Screening lists and thresholds
    """

    now: datetime
    settings: "ValidationSettings"


RuleCheck = Callable[[Mapping[str, Any], RuleContext], None]


@dataclass(frozen=True)
class BusinessRule:
    """
    One cross-field invariant with its declared field dependencies.

    Attributes:
        name: Unique rule name, used in logs and on the raised error
        fields: Fields the rule reads; drives partial triggering on update
        check: Callable raising BusinessRuleError on violation
    """

    name: str
    fields: FrozenSet[str]
    check: RuleCheck = field(compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'fields', frozenset(self.fields))

    def is_triggered_by(self, changed_fields: Iterable[str]) -> bool:
        return not self.fields.isdisjoint(changed_fields)


class BusinessRuleEngine:
    """
    Runs an entity's business rules and aggregates their failures.

    Args:
        rules: Rules in evaluation order
    """

    def __init__(self, rules: Iterable[BusinessRule]) -> None:
        self.rules: Tuple[BusinessRule, ...] = tuple(rules)

    def applicable_rules(self, changed_fields: Optional[Iterable[str]] = None) -> Tuple[BusinessRule, ...]:
        """
        Rules to run for a mutation.

        Args:
            changed_fields: Fields present in an update payload, or None for
                create mode where every rule applies
        """
        if changed_fields is None:
            return self.rules
        changed = frozenset(changed_fields)
        return tuple(rule for rule in self.rules if rule.is_triggered_by(changed))

    def evaluate(
        self,
        record: Mapping[str, Any],
        context: RuleContext,
        changed_fields: Optional[Iterable[str]] = None,
    ) -> ErrorMap:
        """
        Evaluate every applicable rule against ``record``.

        Args:
            record: Coerced record the rules read from
            context: Clock reading and settings
            changed_fields: Update payload fields; None evaluates all rules

        Returns:
            ErrorMap holding every rule failure, empty when all rules pass
        """
        errors = ErrorMap()
        executed: Dict[str, bool] = {}

        for rule in self.applicable_rules(changed_fields):
            try:
                rule.check(record, context)
                executed[rule.name] = True
            except BusinessRuleError as error:
                if error.rule_name is None:
                    error.rule_name = rule.name
                errors.add(error)
                executed[rule.name] = False

        if errors:
            logger.info("Business rules failed",
                        failed_rules=[name for name, passed in executed.items() if not passed],
                        rules_executed=len(executed))
        else:
            logger.debug("Business rules passed", rules_executed=len(executed))

        return errors
