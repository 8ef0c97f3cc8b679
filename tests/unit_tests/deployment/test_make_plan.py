import pytest

from deployment.k8s.kubectl import KubectlClient
from deployment.k8s.make import DEFAULT_PLAN, DeployStep, StepAction, run_plan
from tests.consts import RENDERED_DEV, RENDERED_PROD
from tests.fixtures.k8s_fixtures import FakeKubectl


@pytest.fixture
def in_overlay_root(overlay_root, monkeypatch):
    """Run from the k8s directory so overlays resolve as overlays/<env>."""
    monkeypatch.chdir(overlay_root)
    return overlay_root


def test_default_plan_labels():
    assert [step.label for step in DEFAULT_PLAN] == [
        "view dev k8s",
        "view prod k8s",
        "apply dev k8s",
    ]


def test_default_plan_never_applies_prod():
    applied = [step.environment for step in DEFAULT_PLAN if step.action is StepAction.APPLY]

    assert applied == ["dev"]


def test_default_plan_runs_kubectl_in_order(in_overlay_root, fake_kubectl):
    result = run_plan(DEFAULT_PLAN, KubectlClient(runner=fake_kubectl), ".", echo=lambda line: None)

    assert result.ok
    assert fake_kubectl.commands == [
        "kubectl kustomize overlays/dev",
        "kubectl kustomize overlays/prod",
        "kubectl apply -k overlays/dev",
    ]


def test_plan_echoes_labels_and_output(in_overlay_root, fake_kubectl):
    lines = []

    run_plan(DEFAULT_PLAN, KubectlClient(runner=fake_kubectl), ".", echo=lines.append)

    assert lines == [
        "view dev k8s",
        RENDERED_DEV.rstrip("\n"),
        "view prod k8s",
        RENDERED_PROD.rstrip("\n"),
        "apply dev k8s",
        "configured dev",
    ]


def test_failed_step_does_not_stop_plan(in_overlay_root):
    fake = FakeKubectl(failures={("kustomize", "dev"): (1, "error: bad patch")})

    result = run_plan(DEFAULT_PLAN, KubectlClient(runner=fake), ".", echo=lambda line: None)

    assert not result.ok
    assert len(fake.calls) == 3
    assert result.executed == list(DEFAULT_PLAN)
    assert [r.step.label for r in result.failed] == ["view dev k8s"]
    assert "error: bad patch" in result.failed[0].error


def test_fail_fast_stops_at_first_failure(in_overlay_root):
    fake = FakeKubectl(failures={("kustomize", "prod"): (1, "error: bad patch")})

    result = run_plan(DEFAULT_PLAN, KubectlClient(runner=fake), ".", fail_fast=True, echo=lambda line: None)

    assert not result.ok
    assert fake.commands == [
        "kubectl kustomize overlays/dev",
        "kubectl kustomize overlays/prod",
    ]
    assert result.executed == list(DEFAULT_PLAN[:2])


def test_missing_overlay_fails_without_kubectl(tmp_path, fake_kubectl):
    plan = [DeployStep(StepAction.VIEW, "dev")]

    result = run_plan(plan, KubectlClient(runner=fake_kubectl), tmp_path, echo=lambda line: None)

    assert not result.ok
    assert fake_kubectl.calls == []
    assert "not found" in result.results[0].error


def test_protected_apply_refused(overlay_root, fake_kubectl):
    lines = []
    plan = [DeployStep(StepAction.APPLY, "prod")]

    result = run_plan(plan, KubectlClient(runner=fake_kubectl), overlay_root, echo=lines.append)

    assert not result.ok
    assert fake_kubectl.calls == []
    assert lines[0] == "apply prod k8s"
    assert "protected" in lines[1]


def test_protected_apply_allowed(overlay_root, fake_kubectl):
    plan = [DeployStep(StepAction.APPLY, "prod")]

    result = run_plan(plan, KubectlClient(runner=fake_kubectl), overlay_root,
                      allow_protected=True, echo=lambda line: None)

    assert result.ok
    assert fake_kubectl.calls[0][:3] == ["kubectl", "apply", "-k"]


def test_custom_protected_environments(overlay_root, fake_kubectl):
    plan = [DeployStep(StepAction.APPLY, "dev")]

    result = run_plan(plan, KubectlClient(runner=fake_kubectl), overlay_root,
                      protected=["dev"], echo=lambda line: None)

    assert not result.ok
    assert fake_kubectl.calls == []


def test_dry_run_is_passed_to_apply(in_overlay_root, fake_kubectl):
    run_plan(DEFAULT_PLAN, KubectlClient(runner=fake_kubectl), ".", dry_run=True, echo=lambda line: None)

    assert fake_kubectl.commands[-1] == "kubectl apply -k overlays/dev --dry-run=client"


@pytest.mark.parametrize("name", ["prod/", "./prod", "../overlays/prod"])
def test_protected_apply_cannot_be_reached_by_alias(overlay_root, fake_kubectl, name):
    plan = [DeployStep(StepAction.APPLY, name)]

    result = run_plan(plan, KubectlClient(runner=fake_kubectl), overlay_root, echo=lambda line: None)

    assert not result.ok
    assert fake_kubectl.calls == []
    assert "single directory name" in result.results[0].error


@pytest.mark.parametrize("name", ["prod/", "./prod", "../overlays/prod"])
def test_protected_apply_by_alias_refused_from_overlay_root(in_overlay_root, fake_kubectl, name):
    plan = [DeployStep(StepAction.APPLY, name)]

    result = run_plan(plan, KubectlClient(runner=fake_kubectl), ".", echo=lambda line: None)

    assert not result.ok
    assert fake_kubectl.calls == []
