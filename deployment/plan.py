"""
Deployment plan data model

A plan is an ordered list of steps, one contract per step. Constructor
arguments are literals or Refs to the address of an earlier step. An optional
authorization link grants one deployed contract a capability on another.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Sequence, Tuple

from .errors import ArtifactError, PlanValidationError


@dataclass(frozen=True)
class Ref:
    """Back-reference to the address produced by an earlier step"""
    step: str

    def __str__(self) -> str:
        return f"${self.step}"


def parse_arg(value: Any) -> Any:
    """Turn "$Step" / "$Step.address" strings into Refs, recursing into lists"""
    if isinstance(value, str) and value.startswith("$") and len(value) > 1:
        name = value[1:]
        if name.endswith(".address"):
            name = name[:-len(".address")]
        return Ref(name)
    if isinstance(value, (list, tuple)):
        return tuple(parse_arg(item) for item in value)
    return value


def _require_mapping(data: Any, what: str) -> None:
    if not isinstance(data, Mapping):
        raise PlanValidationError(f"{what} must be a JSON object, got {type(data).__name__}")


def _list_field(data: Mapping[str, Any], key: str, step: Optional[str] = None) -> list:
    value = data.get(key, [])
    if not isinstance(value, (list, tuple)):
        raise PlanValidationError(f"'{key}' must be a list, got {type(value).__name__}", step=step)
    return list(value)


def iter_refs(args: Sequence[Any]) -> Iterator[Ref]:
    for arg in args:
        if isinstance(arg, Ref):
            yield arg
        elif isinstance(arg, (list, tuple)):
            yield from iter_refs(arg)


@dataclass(frozen=True)
class DeploymentStep:
    """One contract deployment"""
    name: str
    args: Tuple[Any, ...] = ()
    contract: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))
        if self.contract is None:
            object.__setattr__(self, "contract", self.name)

    @property
    def refs(self) -> Tuple[Ref, ...]:
        return tuple(iter_refs(self.args))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeploymentStep":
        _require_mapping(data, "Step")
        if "name" not in data and "contract" not in data:
            raise PlanValidationError(f"Step needs a name or contract: {dict(data)}")
        name = data.get("name") or data["contract"]
        return cls(
            name=name,
            args=tuple(parse_arg(arg) for arg in _list_field(data, "args", step=name)),
            contract=data.get("contract"),
        )


class AuthorizationMode(Enum):
    ONE_SHOT = "one-shot"
    SETTABLE = "settable"


@dataclass(frozen=True)
class AuthorizationLink:
    """
    Capability grant from the grantor contract to the grantee contract

    The grant is called on the grantor as grant_function(grantee, *grant_args).
    Settable links are checked with status_function(grantee) -> bool and may
    be undone with revoke_function(grantee, *revoke_args).
    """
    grantor: str
    grantee: str
    mode: AuthorizationMode
    grant_function: str
    grant_args: Tuple[Any, ...] = ()
    status_function: Optional[str] = None
    revoke_function: Optional[str] = None
    revoke_args: Tuple[Any, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "mode", AuthorizationMode(self.mode))
        object.__setattr__(self, "grant_args", tuple(self.grant_args))
        object.__setattr__(self, "revoke_args", tuple(self.revoke_args))

    @property
    def checkable(self) -> bool:
        return self.mode is AuthorizationMode.SETTABLE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuthorizationLink":
        _require_mapping(data, "Authorization link")
        try:
            return cls(
                grantor=data["grantor"],
                grantee=data["grantee"],
                mode=AuthorizationMode(data["mode"]),
                grant_function=data["grant"],
                grant_args=tuple(_list_field(data, "grant_args", step=data.get("grantor"))),
                status_function=data.get("status"),
                revoke_function=data.get("revoke"),
                revoke_args=tuple(_list_field(data, "revoke_args", step=data.get("grantor"))),
            )
        except KeyError as e:
            raise PlanValidationError(f"Authorization link is missing {e}")
        except ValueError as e:
            raise PlanValidationError(f"Invalid authorization link: {e}")


@dataclass(frozen=True)
class DeploymentPlan:
    """Ordered deployment steps plus the optional authorization link"""
    name: str
    steps: Tuple[DeploymentStep, ...]
    link: Optional[AuthorizationLink] = None
    description: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def step_names(self) -> Tuple[str, ...]:
        return tuple(step.name for step in self.steps)

    def step(self, name: str) -> DeploymentStep:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: Optional[str] = None) -> "DeploymentPlan":
        _require_mapping(data, "Plan")
        steps = tuple(DeploymentStep.from_dict(step) for step in _list_field(data, "steps"))
        link_data = data.get("link")
        return cls(
            name=name or data.get("name", "plan"),
            steps=steps,
            link=AuthorizationLink.from_dict(link_data) if link_data else None,
            description=data.get("description", ""),
        )

    @classmethod
    def from_file(cls, file_path: str) -> "DeploymentPlan":
        """Load a plan from a JSON file"""
        try:
            with open(file_path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PlanValidationError(f"Could not read plan {file_path}: {e}")
        return cls.from_dict(data)


def validate_plan(plan: DeploymentPlan, resolver) -> None:
    """
    Check a plan before anything is submitted

    Args:
        plan: The plan to check
        resolver: Artifact resolver used to confirm every contract exists

    Raises:
        PlanValidationError: naming the first offending step
    """
    if not plan.steps:
        raise PlanValidationError(f"Plan '{plan.name}' has no steps")

    seen = set()
    for step in plan.steps:
        if step.name in seen:
            raise PlanValidationError("Duplicate step name", step=step.name)

        for ref in step.refs:
            if ref.step == step.name:
                raise PlanValidationError(f"Step references its own address {ref}", step=step.name)
            if ref.step not in seen:
                raise PlanValidationError(f"Reference {ref} does not point at an earlier step", step=step.name)

        try:
            artifact = resolver.resolve(step.contract)
        except ArtifactError as e:
            raise PlanValidationError(e.message, step=step.name) from e

        if not artifact.is_deployable:
            raise PlanValidationError(f"{step.contract} has no deployable bytecode", step=step.name)
        if artifact.unlinked_libraries:
            placeholders = ", ".join(artifact.unlinked_libraries)
            raise PlanValidationError(f"{step.contract} has unlinked libraries: {placeholders}", step=step.name)

        expected = len(artifact.constructor_inputs)
        if expected != len(step.args):
            raise PlanValidationError(
                f"{step.contract} constructor takes {expected} argument(s), got {len(step.args)}",
                step=step.name,
            )
        seen.add(step.name)

    if plan.link is not None:
        _validate_link(plan, plan.link, resolver)


def _validate_link(plan: DeploymentPlan, link: AuthorizationLink, resolver) -> None:
    for role, name in (("grantor", link.grantor), ("grantee", link.grantee)):
        if name not in plan.step_names:
            raise PlanValidationError(f"Authorization {role} '{name}' is not a step in the plan")

    if link.mode is AuthorizationMode.SETTABLE and not link.status_function:
        raise PlanValidationError("Settable authorization needs a status function", step=link.grantor)
    if link.mode is AuthorizationMode.ONE_SHOT and (link.status_function or link.revoke_function):
        raise PlanValidationError("One-shot authorization cannot be queried or revoked", step=link.grantor)

    grantor = resolver.resolve(plan.step(link.grantor).contract)
    for function in (link.grant_function, link.status_function, link.revoke_function):
        if function and not grantor.has_function(function):
            raise PlanValidationError(f"{grantor.name} has no function '{function}'", step=link.grantor)
