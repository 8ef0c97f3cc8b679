import subprocess

import pytest

from deployment.errors import KubectlError, KubectlNotFoundError
from deployment.k8s.kubectl import KubectlClient
from env_api.config.settings import Settings
from tests.consts import RENDERED_DEV
from tests.fixtures.k8s_fixtures import FakeKubectl


def test_kustomize_returns_rendered_manifests(fake_kubectl):
    client = KubectlClient(runner=fake_kubectl)

    rendered = client.kustomize("overlays/dev")

    assert rendered == RENDERED_DEV
    assert fake_kubectl.calls == [["kubectl", "kustomize", "overlays/dev"]]
    assert fake_kubectl.kwargs[0] == {"capture_output": True, "text": True, "timeout": 120.0}


def test_apply_kustomization(fake_kubectl):
    client = KubectlClient(runner=fake_kubectl)

    output = client.apply_kustomization("overlays/dev")

    assert output == "configured dev\n"
    assert fake_kubectl.calls == [["kubectl", "apply", "-k", "overlays/dev"]]


def test_apply_dry_run(fake_kubectl):
    client = KubectlClient(runner=fake_kubectl)

    client.apply_kustomization("overlays/dev", dry_run=True)

    assert fake_kubectl.calls == [["kubectl", "apply", "-k", "overlays/dev", "--dry-run=client"]]


def test_context_and_binary_are_passed(fake_kubectl):
    client = KubectlClient(kubectl_bin="/opt/bin/kubectl", context="kind-dev", timeout=5, runner=fake_kubectl)

    client.kustomize("overlays/prod")

    assert fake_kubectl.calls == [["/opt/bin/kubectl", "--context", "kind-dev", "kustomize", "overlays/prod"]]
    assert fake_kubectl.kwargs[0]["timeout"] == 5


def test_from_settings(fake_kubectl):
    settings = Settings(_env_file=None, kubectl_bin="k", kubectl_context="ctx", kubectl_timeout=9)

    client = KubectlClient.from_settings(settings, runner=fake_kubectl)

    assert client.build_command("version") == ["k", "--context", "ctx", "version"]
    assert client.timeout == 9


def test_non_zero_exit_raises_kubectl_error():
    fake = FakeKubectl(failures={("kustomize", "dev"): (1, "error: accumulating resources\n")})
    client = KubectlClient(runner=fake)

    with pytest.raises(KubectlError) as exc_info:
        client.kustomize("overlays/dev")

    assert exc_info.value.returncode == 1
    assert exc_info.value.stderr == "error: accumulating resources"
    assert exc_info.value.command == ["kubectl", "kustomize", "overlays/dev"]
    assert "exited with status 1" in str(exc_info.value)


def test_missing_kubectl_raises_not_found():
    client = KubectlClient(runner=FakeKubectl(exc=FileNotFoundError("kubectl")))

    with pytest.raises(KubectlNotFoundError):
        client.kustomize("overlays/dev")


def test_timeout_raises_kubectl_error():
    timeout = subprocess.TimeoutExpired(cmd=["kubectl"], timeout=1)
    client = KubectlClient(timeout=1, runner=FakeKubectl(exc=timeout))

    with pytest.raises(KubectlError) as exc_info:
        client.apply_kustomization("overlays/dev")

    assert exc_info.value.returncode is None
    assert "timed out" in str(exc_info.value)
