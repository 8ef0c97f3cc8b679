"""Kustomize overlay lookup and rendered manifest summaries."""
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import List, Optional, Union

import yaml

from deployment.errors import ManifestParseError, OverlayNotFoundError

KUSTOMIZATION_FILES = ("kustomization.yaml", "kustomization.yml", "Kustomization")
OVERLAYS_DIR = "overlays"


@dataclass(frozen=True)
class Overlay:
    """An environment specific Kustomize directory, e.g. ``overlays/dev``."""
    name: str
    path: Path

    @property
    def kustomization_file(self) -> Optional[Path]:
        for filename in KUSTOMIZATION_FILES:
            candidate = self.path / filename
            if candidate.is_file():
                return candidate
        return None

    def exists(self) -> bool:
        return self.path.is_dir() and self.kustomization_file is not None


@dataclass(frozen=True)
class ResourceRef:
    """One document of rendered manifests."""
    kind: str
    name: str
    namespace: Optional[str] = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.name} (namespace {self.namespace})"
        return f"{self.kind}/{self.name}"


def overlay_path(root: Union[str, Path], name: str) -> Path:
    return Path(root) / OVERLAYS_DIR / name


def is_plain_name(name: str) -> bool:
    """True for a single path segment such as ``prod``; false for ``prod/`` or ``../prod``."""
    return (
        bool(name)
        and name not in (".", "..")
        and "/" not in name
        and "\\" not in name
        and PurePath(name).name == name
    )


def resolve_overlay(root: Union[str, Path], name: str) -> Overlay:
    """Find the overlay called ``name`` under ``<root>/overlays``.

    Raises:
        OverlayNotFoundError: ``name`` is not a plain directory name, or the
            directory or its kustomization file is missing
    """
    if not is_plain_name(name):
        raise OverlayNotFoundError(
            f"Overlay name '{name}' must be a single directory name under {OVERLAYS_DIR}/"
        )
    overlay = Overlay(name=name, path=overlay_path(root, name))
    if not overlay.path.is_dir():
        raise OverlayNotFoundError(f"Overlay '{name}' not found at {overlay.path}")
    if overlay.kustomization_file is None:
        raise OverlayNotFoundError(
            f"Overlay '{name}' at {overlay.path} has no kustomization file "
            f"(expected one of {', '.join(KUSTOMIZATION_FILES)})"
        )
    return overlay


def discover_overlays(root: Union[str, Path]) -> List[Overlay]:
    """List valid overlays under ``<root>/overlays`` sorted by name."""
    overlays_dir = Path(root) / OVERLAYS_DIR
    if not overlays_dir.is_dir():
        return []
    overlays = [
        Overlay(name=child.name, path=child)
        for child in overlays_dir.iterdir()
        if child.is_dir()
    ]
    return sorted((o for o in overlays if o.exists()), key=lambda o: o.name)


def summarize_manifests(rendered: str) -> List[ResourceRef]:
    """Parse ``kubectl kustomize`` output into a list of resources.

    Raises:
        ManifestParseError: invalid YAML or a document that is not a resource
    """
    try:
        documents = list(yaml.safe_load_all(rendered))
    except yaml.YAMLError as e:
        raise ManifestParseError(f"Rendered manifests are not valid YAML: {e}") from e

    resources = []
    for index, document in enumerate(documents):
        if document is None:
            continue
        if not isinstance(document, dict):
            raise ManifestParseError(f"Document {index} is not a mapping")
        metadata = document.get("metadata") or {}
        resources.append(ResourceRef(
            kind=document.get("kind", "Unknown"),
            name=metadata.get("name", "<unnamed>"),
            namespace=metadata.get("namespace"),
        ))
    return resources
