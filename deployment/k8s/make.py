"""
The deployment plan behind ``k8s/make.sh``.

Renders the dev and prod overlays for inspection, then applies dev. Steps run
strictly in order, one kubectl process at a time.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from deployment.errors import DeploymentError
from deployment.k8s.kubectl import KubectlClient
from deployment.k8s.overlays import resolve_overlay

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]


class StepAction(str, Enum):
    VIEW = "view"
    APPLY = "apply"


@dataclass(frozen=True)
class DeployStep:
    action: StepAction
    environment: str

    @property
    def label(self) -> str:
        return f"{self.action.value} {self.environment} k8s"


# Prod is rendered for review only; it is never applied by this plan.
DEFAULT_PLAN = (
    DeployStep(StepAction.VIEW, "dev"),
    DeployStep(StepAction.VIEW, "prod"),
    DeployStep(StepAction.APPLY, "dev"),
)


@dataclass
class StepResult:
    step: DeployStep
    ok: bool
    output: str = ""
    error: Optional[str] = None


@dataclass
class PlanResult:
    results: List[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failed(self) -> List[StepResult]:
        return [result for result in self.results if not result.ok]

    @property
    def executed(self) -> List[DeployStep]:
        return [result.step for result in self.results]


def run_step(step: DeployStep, client: KubectlClient, overlay_root: Union[str, Path],
             protected: Iterable[str] = ("prod",), allow_protected: bool = False,
             dry_run: bool = False) -> StepResult:
    """Run a single step and capture its outcome instead of raising.

    The protected check runs against the resolved overlay name.
    """
    try:
        overlay = resolve_overlay(overlay_root, step.environment)
        if step.action is StepAction.APPLY and overlay.name in protected and not allow_protected:
            return StepResult(
                step=step,
                ok=False,
                error=f"refusing to apply protected environment '{overlay.name}' without confirmation",
            )
        if step.action is StepAction.VIEW:
            output = client.kustomize(overlay.path)
        else:
            output = client.apply_kustomization(overlay.path, dry_run=dry_run)
    except DeploymentError as e:
        logger.error(f"{step.label} failed: {e}")
        return StepResult(step=step, ok=False, error=str(e))

    return StepResult(step=step, ok=True, output=output)


def run_plan(plan: Sequence[DeployStep], client: KubectlClient, overlay_root: Union[str, Path],
             fail_fast: bool = False, protected: Iterable[str] = ("prod",),
             allow_protected: bool = False, dry_run: bool = False,
             echo: Echo = print) -> PlanResult:
    """Run ``plan`` in order, echoing each step label and its output.

    A failed step does not stop later steps unless ``fail_fast`` is set; every
    failure is reported in the returned ``PlanResult``.
    """
    protected = tuple(protected)
    plan_result = PlanResult()

    for step in plan:
        echo(step.label)
        result = run_step(
            step,
            client,
            overlay_root,
            protected=protected,
            allow_protected=allow_protected,
            dry_run=dry_run,
        )
        plan_result.results.append(result)

        if result.ok:
            if result.output:
                echo(result.output.rstrip("\n"))
        else:
            echo(f"error: {result.error}")
            if fail_fast:
                logger.warning(f"Stopping plan after failed step: {step.label}")
                break

    if plan_result.ok:
        logger.info(f"Plan completed: {len(plan_result.results)} steps")
    else:
        logger.warning(f"Plan finished with {len(plan_result.failed)} failed step(s)")
    return plan_result
