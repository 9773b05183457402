"""
Built-in deployment plans

The deploy scripts that used to be copied per contract version, expressed as
data. The authorization mode is declared, not inferred from a method name.
"""

from typing import Dict

from .errors import PlanValidationError
from .plan import AuthorizationLink, AuthorizationMode, DeploymentPlan, DeploymentStep, Ref

TREE_DEPLOYMENTS = (
    DeploymentStep("TreeToken", args=("TREE", "TREE")),
    DeploymentStep("TreeMarket", args=(Ref("TreeToken"),)),
)

PLANS: Dict[str, DeploymentPlan] = {
    "adoption-plant": DeploymentPlan(
        name="adoption-plant",
        steps=(DeploymentStep("AdoptionPlant"),),
        description="AdoptionPlant on its own",
    ),
    "tree-once": DeploymentPlan(
        name="tree-once",
        steps=TREE_DEPLOYMENTS,
        link=AuthorizationLink(
            grantor="TreeToken",
            grantee="TreeMarket",
            mode=AuthorizationMode.ONE_SHOT,
            grant_function="authorizeOnce",
        ),
        description="TREE token + TreeMarket, single-use authorizeOnce",
    ),
    "tree-minter": DeploymentPlan(
        name="tree-minter",
        steps=TREE_DEPLOYMENTS,
        link=AuthorizationLink(
            grantor="TreeToken",
            grantee="TreeMarket",
            mode=AuthorizationMode.SETTABLE,
            grant_function="authorizeMinter",
            grant_args=(True,),
            status_function="isMinterAuthorized",
            revoke_function="authorizeMinter",
            revoke_args=(False,),
        ),
        description="TREE token + TreeMarket, re-settable authorizeMinter",
    ),
}

DEFAULT_PLAN = "tree-once"


def get_plan(name_or_path: str) -> DeploymentPlan:
    """Look up a built-in plan by name, or load a JSON plan file"""
    if name_or_path in PLANS:
        return PLANS[name_or_path]
    if name_or_path.endswith(".json"):
        return DeploymentPlan.from_file(name_or_path)
    known = ", ".join(sorted(PLANS))
    raise PlanValidationError(f"Unknown plan '{name_or_path}' (built-in plans: {known})")
