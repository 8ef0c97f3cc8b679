# cli.py
import logging
import sys

import click

from deployment.errors import DeploymentError
from deployment.image.builder import build_image
from deployment.image.dockerfile import CONTRACTS, check_contract, load_dockerfile
from deployment.k8s.kubectl import KubectlClient
from deployment.k8s.make import DEFAULT_PLAN, run_plan
from deployment.k8s.overlays import discover_overlays, resolve_overlay, summarize_manifests
from deployment.k8s.smoke import wait_for_service
from env_api.config.settings import get_settings

# Configure logging
logger = logging.getLogger(__name__)


def _fail(error: Exception) -> None:
    click.echo(f"❌ {error}", err=True)
    sys.exit(1)


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this invocation")
def cli(log_level):
    """Environment service, image and Kubernetes deployment commands"""
    settings = get_settings()
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default=None, help="API host address (default APP_HOST)")
@click.option("--port", default=None, type=int, help="API port (default APP_PORT)")
@click.option("--reload/--no-reload", default=False, help="Enable/disable auto-reload for development")
def serve(host, port, reload):
    """Start the environment web service"""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port if port is not None else settings.port
    click.echo(f"Serving on http://{host}:{port}")
    uvicorn.run(
        "env_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    click.echo(f"  App: {settings.app_name} {settings.app_version}")
    click.echo(f"  Listen: {settings.host}:{settings.port}")
    click.echo(f"  Log Level: {settings.log_level}")
    click.echo(f"  Kustomize Root: {settings.kustomize_root}")
    click.echo(f"  kubectl: {settings.kubectl_bin} (context: {settings.kubectl_context or 'current'})")
    click.echo(f"  Protected Environments: {', '.join(settings.protected_environments) or 'none'}")
    click.echo(f"  Image: {settings.image_ref} ({settings.image_platform})")
    click.echo(f"  Dockerfile: {settings.dockerfile}")
    click.echo(f"  Service URL: {settings.service_url}")


@cli.group()
def k8s():
    """Render and apply the Kustomize overlays"""
    pass


@k8s.command("list")
def list_overlays():
    """List overlays under KUSTOMIZE_ROOT/overlays"""
    settings = get_settings()
    overlays = discover_overlays(settings.kustomize_root)
    if not overlays:
        click.echo(f"No overlays found under {settings.kustomize_root}/overlays")
        return
    for overlay in overlays:
        marker = " (protected)" if settings.is_protected(overlay.name) else ""
        click.echo(f"{overlay.name}{marker}\t{overlay.path}")


@k8s.command("view")
@click.argument("environment")
@click.option("--summary", is_flag=True, help="List rendered resources instead of the full YAML")
def view_overlay(environment, summary):
    """Render an overlay with kubectl kustomize"""
    settings = get_settings()
    client = KubectlClient.from_settings(settings)
    try:
        overlay = resolve_overlay(settings.kustomize_root, environment)
        rendered = client.kustomize(overlay.path)
        if summary:
            for resource in summarize_manifests(rendered):
                click.echo(str(resource))
        else:
            click.echo(rendered.rstrip("\n"))
    except DeploymentError as e:
        _fail(e)


@k8s.command("apply")
@click.argument("environment")
@click.option("--yes", is_flag=True, help="Apply protected environments without prompting")
@click.option("--dry-run", is_flag=True, help="Pass --dry-run=client to kubectl")
def apply_overlay(environment, yes, dry_run):
    """Apply an overlay with kubectl apply -k"""
    settings = get_settings()
    try:
        overlay = resolve_overlay(settings.kustomize_root, environment)
    except DeploymentError as e:
        _fail(e)
    if settings.is_protected(overlay.name) and not yes and not dry_run:
        click.confirm(f"'{overlay.name}' is protected. Apply it to the current context?", abort=True)

    client = KubectlClient.from_settings(settings)
    try:
        output = client.apply_kustomization(overlay.path, dry_run=dry_run)
    except DeploymentError as e:
        _fail(e)
    click.echo(output.rstrip("\n"))
    click.echo(f"✅ Applied {overlay.name}{' (dry run)' if dry_run else ''}")


@k8s.command("make")
@click.option("--fail-fast", is_flag=True, help="Stop at the first failed step")
@click.option("--dry-run", is_flag=True, help="Pass --dry-run=client to the apply step")
def make(fail_fast, dry_run):
    """View dev, view prod, then apply dev"""
    settings = get_settings()
    client = KubectlClient.from_settings(settings)
    result = run_plan(
        DEFAULT_PLAN,
        client,
        settings.kustomize_root,
        fail_fast=fail_fast,
        protected=settings.protected_environments,
        dry_run=dry_run,
        echo=click.echo,
    )
    if not result.ok:
        failed = ", ".join(r.step.label for r in result.failed)
        click.echo(f"❌ {len(result.failed)} step(s) failed: {failed}", err=True)
        sys.exit(1)


@k8s.command("smoke")
@click.option("--url", default=None, help="Service base URL (default SERVICE_URL)")
@click.option("--attempts", default=10, type=int, help="Number of checks before giving up")
@click.option("--interval", default=3.0, type=float, help="Seconds between checks")
def smoke(url, attempts, interval):
    """Check that / and /env answer on a running service"""
    settings = get_settings()
    try:
        check = wait_for_service(url or settings.service_url, attempts=attempts, interval=interval)
    except DeploymentError as e:
        _fail(e)
    click.echo(f"✅ {check.base_url} is up (HOSTNAME={check.hostname})")


@cli.group()
def image():
    """Check and build the container image"""
    pass


@image.command("check")
@click.option("--dockerfile", default=None, help="Dockerfile path (default DOCKERFILE)")
@click.option("--contract", type=click.Choice(sorted(CONTRACTS)), default="python",
              help="Which image contract to check against")
def check_image(dockerfile, contract):
    """Check a Dockerfile against the image contract"""
    settings = get_settings()
    path = dockerfile or settings.dockerfile
    try:
        violations = check_contract(load_dockerfile(path), CONTRACTS[contract])
    except (DeploymentError, OSError) as e:
        _fail(e)
    if violations:
        for violation in violations:
            click.echo(f"  - {violation}", err=True)
        _fail(Exception(f"{path} violates the {contract} image contract"))
    click.echo(f"✅ {path} satisfies the {contract} image contract")


@image.command("build")
@click.option("--tag", default=None, help="Image tag (default IMAGE_NAME:IMAGE_TAG)")
@click.option("--context", "context_dir", default=".", help="Build context directory")
@click.option("--skip-check", is_flag=True, help="Build without checking the image contract")
def build(tag, context_dir, skip_check):
    """Build the image with docker"""
    settings = get_settings()
    try:
        built = build_image(
            tag or settings.image_ref,
            dockerfile=settings.dockerfile,
            context=context_dir,
            platform=settings.image_platform,
            docker_bin=settings.docker_bin,
            skip_check=skip_check,
        )
    except (DeploymentError, OSError) as e:
        _fail(e)
    click.echo(f"✅ Built {built}")


if __name__ == "__main__":
    cli()
