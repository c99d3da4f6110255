"""Ability rules derived from session users.

An ``Ability`` is an ordered list of rules answering ``can(action, subject)``.
Rules are evaluated last-to-first; the first rule matching both action and
subject decides, and an inverted rule denies. ``manage`` in a rule matches
every action and ``all`` matches every subject.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

from .models import SessionUser
from .roles import Permission, Role, get_role_permissions


class Action(str, Enum):
    """Actions checked against subjects."""

    MANAGE = "manage"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Subject(str, Enum):
    """Domain entities abilities are checked against."""

    ALL = "all"
    DOCUMENT = "Document"
    RISK = "Risk"
    INCIDENT = "Incident"
    TRAINING = "Training"
    MEASURE = "Measure"
    AUDIT = "Audit"
    GOAL = "Goal"
    CHEMICAL = "Chemical"
    ENVIRONMENTAL_ASPECT = "EnvironmentalAspect"
    ENVIRONMENTAL_MEASUREMENT = "EnvironmentalMeasurement"
    SECURITY_ASSET = "SecurityAsset"
    SECURITY_CONTROL = "SecurityControl"
    ACCESS_REVIEW = "AccessReview"
    FORM_TEMPLATE = "FormTemplate"
    FORM_SUBMISSION = "FormSubmission"
    CUSTOMER_FEEDBACK = "CustomerFeedback"


ActionArg = Union[Action, str, Iterable[Union[Action, str]]]
SubjectArg = Union[Subject, str, Iterable[Union[Subject, str]]]


def _as_actions(value: ActionArg) -> frozenset[Action]:
    if isinstance(value, (Action, str)):
        return frozenset({Action(value)})
    return frozenset(Action(item) for item in value)


def _as_subjects(value: SubjectArg) -> frozenset[Subject]:
    if isinstance(value, (Subject, str)):
        return frozenset({Subject(value)})
    return frozenset(Subject(item) for item in value)


@dataclass(frozen=True)
class Rule:
    """A single grant (or, when inverted, a revocation)."""

    actions: frozenset[Action]
    subjects: frozenset[Subject]
    inverted: bool = False

    def matches(self, action: Action, subject: Subject) -> bool:
        action_ok = Action.MANAGE in self.actions or action in self.actions
        subject_ok = Subject.ALL in self.subjects or subject in self.subjects
        return action_ok and subject_ok

    def to_dict(self) -> dict:
        return {
            "action": sorted(a.value for a in self.actions),
            "subject": sorted(s.value for s in self.subjects),
            "inverted": self.inverted,
        }


class Ability:
    """Capability object answering ``can(action, subject)``."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: tuple[Rule, ...] = tuple(rules)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def relevant_rule(
        self, action: Union[Action, str], subject: Union[Subject, str]
    ) -> Optional[Rule]:
        """Return the rule that decides ``(action, subject)``, if any."""
        action_enum = Action(action)
        subject_enum = Subject(subject)
        for rule in reversed(self._rules):
            if rule.matches(action_enum, subject_enum):
                return rule
        return None

    def can(self, action: Union[Action, str], subject: Union[Subject, str]) -> bool:
        rule = self.relevant_rule(action, subject)
        return rule is not None and not rule.inverted

    def cannot(self, action: Union[Action, str], subject: Union[Subject, str]) -> bool:
        return not self.can(action, subject)

    def permitted_actions(self, subject: Union[Subject, str]) -> list[Action]:
        """List the concrete actions allowed on a subject."""
        return [
            action for action in Action
            if action is not Action.MANAGE and self.can(action, subject)
        ]

    def to_rules(self) -> list[dict]:
        """Serialize rules for clients that evaluate abilities themselves."""
        return [rule.to_dict() for rule in self._rules]

    def __bool__(self) -> bool:
        return bool(self._rules)


class AbilityBuilder:
    """Accumulates rules and builds an ``Ability``.

    Usage:
        builder = AbilityBuilder()
        builder.can(Action.READ, Subject.DOCUMENT)
        builder.cannot(Action.DELETE, Subject.DOCUMENT)
        ability = builder.build()
    """

    def __init__(self) -> None:
        self._rules: list[Rule] = []

    def can(self, actions: ActionArg, subjects: SubjectArg) -> "AbilityBuilder":
        self._rules.append(Rule(_as_actions(actions), _as_subjects(subjects)))
        return self

    def cannot(self, actions: ActionArg, subjects: SubjectArg) -> "AbilityBuilder":
        self._rules.append(Rule(_as_actions(actions), _as_subjects(subjects), inverted=True))
        return self

    def build(self) -> Ability:
        return Ability(self._rules)


def define_abilities(user: SessionUser) -> Ability:
    """Build the ability for a session user.

    - Superadmins may manage everything.
    - Support staff may read, create and update everything, never delete.
    - Users without a selected tenant or a known role get nothing.
    - ADMIN and HMS manage everything within their tenant; other roles get
      per-subject grants translated from their permission flags.
    - Documents are never deletable by tenant roles (retention policy).
    """
    builder = AbilityBuilder()

    if user.is_superadmin:
        builder.can(Action.MANAGE, Subject.ALL)
        return builder.build()

    if user.is_support:
        builder.can([Action.READ, Action.CREATE, Action.UPDATE], Subject.ALL)
        return builder.build()

    if user.tenant_id is None or user.role is None:
        return builder.build()

    perms = get_role_permissions(user.role)
    if not perms:
        return builder.build()

    if user.role in (Role.ADMIN, Role.HMS):
        builder.can(Action.MANAGE, Subject.ALL)
    else:
        _apply_domain_permissions(builder, perms)

    builder.cannot(Action.DELETE, Subject.DOCUMENT)

    return builder.build()


def _apply_domain_permissions(builder: AbilityBuilder, perms: frozenset[Permission]) -> None:
    """Translate permission flags into per-subject rules."""
    P = Permission
    can = builder.can

    if P.READ_DOCUMENTS in perms:
        can(Action.READ, Subject.DOCUMENT)
    if P.CREATE_DOCUMENTS in perms:
        can(Action.CREATE, Subject.DOCUMENT)
    if P.APPROVE_DOCUMENTS in perms:
        can(Action.UPDATE, Subject.DOCUMENT)
    if P.DELETE_DOCUMENTS in perms:
        can(Action.DELETE, Subject.DOCUMENT)

    if P.READ_RISKS in perms:
        can(Action.READ, Subject.RISK)
    if P.CREATE_RISKS in perms:
        can(Action.CREATE, Subject.RISK)
    if P.APPROVE_RISKS in perms or P.DELETE_RISKS in perms:
        can(Action.UPDATE, Subject.RISK)
        if P.DELETE_RISKS in perms:
            can(Action.DELETE, Subject.RISK)

    if P.READ_INCIDENTS in perms:
        can(Action.READ, Subject.INCIDENT)
    if P.CREATE_INCIDENTS in perms:
        can(Action.CREATE, Subject.INCIDENT)
    if P.INVESTIGATE_INCIDENTS in perms or P.CLOSE_INCIDENTS in perms:
        can(Action.UPDATE, Subject.INCIDENT)
        if P.CLOSE_INCIDENTS in perms:
            can(Action.DELETE, Subject.INCIDENT)

    if P.READ_ACTIONS in perms:
        can(Action.READ, Subject.MEASURE)
    if P.CREATE_ACTIONS in perms:
        can(Action.CREATE, Subject.MEASURE)
    if P.UPDATE_ACTIONS in perms:
        can(Action.UPDATE, Subject.MEASURE)
    if P.DELETE_ACTIONS in perms:
        can(Action.DELETE, Subject.MEASURE)

    if P.READ_AUDITS in perms:
        can(Action.READ, Subject.AUDIT)
    if P.CREATE_AUDITS in perms:
        can(Action.CREATE, Subject.AUDIT)
    if P.CONDUCT_AUDITS in perms or P.CLOSE_AUDITS in perms:
        can(Action.UPDATE, Subject.AUDIT)
        if P.CLOSE_AUDITS in perms:
            can(Action.DELETE, Subject.AUDIT)

    if P.READ_CHEMICALS in perms:
        can(Action.READ, Subject.CHEMICAL)
    if P.CREATE_CHEMICALS in perms:
        can(Action.CREATE, Subject.CHEMICAL)
    if P.UPDATE_CHEMICALS in perms:
        can(Action.UPDATE, Subject.CHEMICAL)
    if P.DELETE_CHEMICALS in perms:
        can(Action.DELETE, Subject.CHEMICAL)

    if P.READ_OWN_TRAINING in perms or P.READ_ALL_TRAINING in perms:
        can(Action.READ, Subject.TRAINING)
    if P.CREATE_TRAINING in perms:
        can(Action.CREATE, Subject.TRAINING)
    if P.ASSIGN_TRAINING in perms or P.EVALUATE_TRAINING in perms:
        can(Action.UPDATE, Subject.TRAINING)

    if P.READ_GOALS in perms:
        can(Action.READ, Subject.GOAL)
    if P.CREATE_GOALS in perms or P.UPDATE_GOALS in perms or P.MEASURE_GOALS in perms:
        can(Action.UPDATE, Subject.GOAL)
        if P.CREATE_GOALS in perms:
            can(Action.CREATE, Subject.GOAL)

    if P.READ_DOCUMENTS in perms or P.READ_GOALS in perms or P.READ_AUDITS in perms:
        can(Action.READ, Subject.CUSTOMER_FEEDBACK)
    if P.CREATE_DOCUMENTS in perms or P.CREATE_GOALS in perms or P.MANAGE_FORMS in perms:
        can(Action.CREATE, Subject.CUSTOMER_FEEDBACK)
    if P.UPDATE_GOALS in perms or P.MANAGE_FORMS in perms or P.UPDATE_ACTIONS in perms:
        can(Action.UPDATE, Subject.CUSTOMER_FEEDBACK)

    if P.READ_FORMS in perms:
        can(Action.READ, Subject.FORM_TEMPLATE)
    if P.CREATE_FORMS in perms:
        can(Action.CREATE, Subject.FORM_TEMPLATE)
    if P.MANAGE_FORMS in perms:
        can(Action.UPDATE, Subject.FORM_TEMPLATE)
        can(Action.DELETE, Subject.FORM_TEMPLATE)
    if P.FILL_FORMS in perms:
        can(Action.CREATE, Subject.FORM_SUBMISSION)
        can(Action.READ, Subject.FORM_SUBMISSION)

    if P.READ_ENVIRONMENT in perms:
        can(Action.READ, Subject.ENVIRONMENTAL_ASPECT)
    if P.CREATE_ENVIRONMENT in perms:
        can(Action.CREATE, Subject.ENVIRONMENTAL_ASPECT)
    if P.UPDATE_ENVIRONMENT in perms:
        can(Action.UPDATE, Subject.ENVIRONMENTAL_ASPECT)
    if P.RECORD_ENVIRONMENTAL_MEASUREMENTS in perms:
        can([Action.CREATE, Action.UPDATE], Subject.ENVIRONMENTAL_MEASUREMENT)

    if P.READ_SECURITY in perms:
        can(Action.READ, [Subject.SECURITY_ASSET, Subject.SECURITY_CONTROL, Subject.ACCESS_REVIEW])
    if P.CREATE_SECURITY in perms:
        can(Action.CREATE, [Subject.SECURITY_ASSET, Subject.SECURITY_CONTROL])
    if P.UPDATE_SECURITY in perms:
        can(Action.UPDATE, [Subject.SECURITY_ASSET, Subject.SECURITY_CONTROL, Subject.ACCESS_REVIEW])
