"""
Role- and ownership-aware policy engine.

Policies are data: a static table mapping each role to an ordered list of
grant ("can") and exclusion ("cannot") rules over (action, subject), each
optionally conditioned on fields of a concrete record.

Evaluation rules:
- ``manage`` matches any action; subject ``all`` matches any subject
- A matching exclusion always beats a matching grant, whatever the order
- A conditioned rule only counts when a record is supplied and every
  condition holds; without a record it is not satisfied
- Unknown roles get the USER rules; unknown actions or subjects are denied

The engine holds no mutable state, so it is safe to share between
concurrent requests without synchronization.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from .exceptions import PermissionDeniedError
from .types import PolicyDecision, Role

logger = logging.getLogger(__name__)


class Action(str, Enum):
    MANAGE = "manage"  # wildcard for any action
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    PUBLISH = "publish"
    ARCHIVE = "archive"
    RESTORE = "restore"
    EXPORT = "export"
    IMPORT = "import"
    IMPERSONATE = "impersonate"


class Subject(str, Enum):
    USER = "User"
    USER_PROFILE = "UserProfile"
    TOKEN = "Token"
    LOGIN_HISTORY = "LoginHistory"
    AUDIT_LOG = "AuditLog"
    REQUEST_LOG = "RequestLog"
    ALL = "all"  # wildcard for any subject


class Effect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class _ActorId:
    """Placeholder in rule conditions for the id of the acting user."""

    def __repr__(self):
        return "ACTOR_ID"


ACTOR_ID = _ActorId()
_MISSING = object()


def _normalize(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _camel_to_snake(name: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def read_field(record: Any, key: str) -> Any:
    """
    Read ``key`` from a mapping or an object.

    Both the given spelling and its camelCase/snake_case twin are tried, so
    ``userId`` conditions work against ``user_id`` attributes.
    """
    for name in (key, _camel_to_snake(key), _snake_to_camel(key)):
        if isinstance(record, Mapping):
            if name in record:
                return record[name]
        elif hasattr(record, name):
            return getattr(record, name)
    return _MISSING


@dataclass(frozen=True)
class AbilityRule:
    """A single grant or exclusion."""

    effect: Effect
    action: Action
    subject: Subject
    conditions: tuple[tuple[str, Any], ...] = ()

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)

    def applies_to(self, action: Action, subject: Subject) -> bool:
        action_matches = self.action in (Action.MANAGE, action)
        subject_matches = self.subject in (Subject.ALL, subject)
        return action_matches and subject_matches

    def bind(self, actor_id: str | None) -> "AbilityRule":
        """Resolve ACTOR_ID placeholders. Unresolvable ones stay in place."""
        if actor_id is None or not self.conditions:
            return self

        bound = tuple(
            (key, actor_id if value is ACTOR_ID else value)
            for key, value in self.conditions
        )
        return AbilityRule(self.effect, self.action, self.subject, bound)

    def is_satisfied_by(self, record: Any | None) -> bool:
        if not self.conditions:
            return True
        if record is None:
            return False

        for key, expected in self.conditions:
            if expected is ACTOR_ID:
                return False
            actual = read_field(record, key)
            if actual is _MISSING or _normalize(actual) != _normalize(expected):
                return False
        return True

    def describe(self) -> str:
        verb = "can" if self.effect == Effect.ALLOW else "cannot"
        text = f"{verb} {self.action.value} {self.subject.value}"
        if self.conditions:
            text += " where " + ", ".join(f"{key}={value!r}" for key, value in self.conditions)
        return text


def can(action: Action, subject: Subject, **conditions: Any) -> AbilityRule:
    return AbilityRule(Effect.ALLOW, action, subject, tuple(conditions.items()))


def cannot(action: Action, subject: Subject, **conditions: Any) -> AbilityRule:
    return AbilityRule(Effect.DENY, action, subject, tuple(conditions.items()))


ROLE_RULES: Mapping[Role, tuple[AbilityRule, ...]] = MappingProxyType(
    {
        Role.SUPER_ADMIN: (
            can(Action.MANAGE, Subject.ALL),
        ),
        Role.ADMIN: (
            can(Action.MANAGE, Subject.USER),
            can(Action.MANAGE, Subject.USER_PROFILE),
            can(Action.READ, Subject.AUDIT_LOG),
            can(Action.READ, Subject.REQUEST_LOG),
            can(Action.READ, Subject.LOGIN_HISTORY),
            can(Action.MANAGE, Subject.TOKEN),
            # Admins cannot touch super admins
            cannot(Action.DELETE, Subject.USER, role=Role.SUPER_ADMIN),
            cannot(Action.UPDATE, Subject.USER, role=Role.SUPER_ADMIN),
        ),
        Role.MODERATOR: (
            can(Action.READ, Subject.USER),
            can(Action.UPDATE, Subject.USER),
            can(Action.READ, Subject.USER_PROFILE),
            can(Action.UPDATE, Subject.USER_PROFILE),
            can(Action.READ, Subject.LOGIN_HISTORY),
            cannot(Action.DELETE, Subject.USER),
            cannot(Action.CREATE, Subject.USER),
        ),
        Role.USER: (
            can(Action.READ, Subject.USER, id=ACTOR_ID),
            can(Action.UPDATE, Subject.USER, id=ACTOR_ID),
            can(Action.READ, Subject.USER_PROFILE, userId=ACTOR_ID),
            can(Action.UPDATE, Subject.USER_PROFILE, userId=ACTOR_ID),
            can(Action.READ, Subject.LOGIN_HISTORY, userId=ACTOR_ID),
            can(Action.READ, Subject.TOKEN, userId=ACTOR_ID),
            can(Action.DELETE, Subject.TOKEN, userId=ACTOR_ID),
        ),
    }
)


class PolicyEngine:
    """
    Evaluates (role, action, subject, record) against the role rule table.

    Args:
        rules: Role to rule mapping; defaults to ROLE_RULES
        fallback_role: Role whose rules apply to unknown roles
    """

    def __init__(
        self,
        rules: Mapping[Role, Iterable[AbilityRule]] | None = None,
        fallback_role: Role = Role.USER,
    ):
        source = ROLE_RULES if rules is None else rules
        self._rules: Mapping[Role, tuple[AbilityRule, ...]] = MappingProxyType(
            {role: tuple(role_rules) for role, role_rules in source.items()}
        )
        if fallback_role not in self._rules:
            raise ValueError(f"Fallback role {fallback_role.value} has no rules")
        self.fallback_role = fallback_role

    def resolve_role(self, role: Role | str) -> Role:
        try:
            resolved = Role(role)
        except ValueError:
            logger.debug(f"Unknown role {role!r}, using {self.fallback_role.value} rules")
            return self.fallback_role
        return resolved if resolved in self._rules else self.fallback_role

    def rules_for(self, role: Role | str, actor_id: str | None = None) -> list[AbilityRule]:
        """Build the ability (rules bound to the actor) for one check."""
        return [rule.bind(actor_id) for rule in self._rules[self.resolve_role(role)]]

    def evaluate(
        self,
        role: Role | str,
        action: Action | str,
        subject: Subject | str,
        record: Any | None = None,
        actor_id: str | None = None,
    ) -> PolicyDecision:
        """
        Decide whether ``role`` may perform ``action`` on ``subject``.

        Args:
            role: Role of the acting user
            action: Requested action
            subject: Subject type being acted on
            record: Concrete record for conditioned rules (mapping or object)
            actor_id: Id of the acting user, for ownership conditions

        Returns:
            PolicyDecision with the deciding rule, if any
        """
        try:
            action = Action(action)
            subject = Subject(subject)
        except ValueError as e:
            return PolicyDecision(allowed=False, reason=f"Unknown action or subject: {e}")

        relevant = [
            rule for rule in self.rules_for(role, actor_id) if rule.applies_to(action, subject)
        ]

        for rule in relevant:
            if rule.effect == Effect.DENY and rule.is_satisfied_by(record):
                return PolicyDecision(allowed=False, reason=f"Excluded: {rule.describe()}", rule=rule)

        for rule in relevant:
            if rule.effect == Effect.ALLOW and rule.is_satisfied_by(record):
                return PolicyDecision(allowed=True, reason=f"Granted: {rule.describe()}", rule=rule)

        return PolicyDecision(
            allowed=False,
            reason=f"No rule grants {action.value} on {subject.value}",
        )

    def authorize(
        self,
        role: Role | str,
        action: Action | str,
        subject: Subject | str,
        record: Any | None = None,
        actor_id: str | None = None,
    ) -> bool:
        return self.evaluate(role, action, subject, record, actor_id).allowed

    def enforce(
        self,
        role: Role | str,
        action: Action | str,
        subject: Subject | str,
        record: Any | None = None,
        actor_id: str | None = None,
    ) -> PolicyDecision:
        """
        Like ``evaluate`` but raises on denial.

        Raises:
            PermissionDeniedError: If the decision is a denial
        """
        decision = self.evaluate(role, action, subject, record, actor_id)
        if not decision.allowed:
            raise PermissionDeniedError(
                _normalize(action),
                _normalize(subject),
                details={"reason": decision.reason},
            )
        return decision

    def check_all(
        self,
        role: Role | str,
        requirements: Iterable[tuple[Action | str, Subject | str]],
        actor_id: str | None = None,
        record: Any | None = None,
    ) -> bool:
        """
        Request-gate check: every (action, subject) requirement must pass.

        An empty requirement list allows access.
        """
        return all(
            self.authorize(role, action, subject, record, actor_id)
            for action, subject in requirements
        )
