"""
Provider module loader.

Providers are directories of capability files produced by the provider
build step::

    <providers_dir>/<provider_id>/catalog.py
    <providers_dir>/<provider_id>/posts.py
    <providers_dir>/<provider_id>/meta.py
    <providers_dir>/<provider_id>/episodes.py
    <providers_dir>/<provider_id>/stream.py

Every call to :meth:`ProviderLoader.load` executes the files again and never
registers them in ``sys.modules``, so a rebuilt provider takes effect on the
next request.
"""
from __future__ import annotations

import importlib.machinery
import importlib.util
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict

from .errors import CapabilityNotFound, ProviderLoadError, ProviderNotFound

logger = logging.getLogger(__name__)

CAPABILITY_FILES = ("catalog", "posts", "meta", "episodes", "stream")
_PROVIDER_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass
class ProviderModule:
    """The capability modules of one provider as they were on disk at load time."""

    provider_id: str
    path: Path
    modules: Dict[str, ModuleType] = field(default_factory=dict)

    def has(self, capability: str) -> bool:
        return capability in self.modules

    def attribute(self, capability: str, name: str, default: Any = None) -> Any:
        module = self.modules.get(capability)
        if module is None:
            return default
        return getattr(module, name, default)

    def function(self, capability: str, name: str) -> Callable[..., Any]:
        module = self.modules.get(capability)
        if module is None:
            raise CapabilityNotFound(f"{capability.capitalize()} module not found for provider '{self.provider_id}'")
        func = getattr(module, name, None)
        if not callable(func):
            raise CapabilityNotFound(f"{name} function not found for provider '{self.provider_id}'")
        return func


class ProviderLoader:
    def __init__(self, providers_dir: Path | str) -> None:
        self._providers_dir = Path(providers_dir)

    @property
    def providers_dir(self) -> Path:
        return self._providers_dir

    def available_providers(self) -> list[str]:
        """Return the provider directories currently present on disk."""

        if not self._providers_dir.is_dir():
            return []
        return sorted(
            item.name
            for item in self._providers_dir.iterdir()
            if item.is_dir() and _PROVIDER_ID_RE.match(item.name)
        )

    def load(self, provider_id: str) -> ProviderModule:
        if not provider_id or not _PROVIDER_ID_RE.match(provider_id) or ".." in provider_id:
            raise ProviderNotFound(f"Unknown provider '{provider_id}'")

        provider_dir = self._providers_dir / provider_id
        if not provider_dir.is_dir():
            raise ProviderNotFound(f"Unknown provider '{provider_id}'")

        provider = ProviderModule(provider_id=provider_id, path=provider_dir)
        for capability in CAPABILITY_FILES:
            path = provider_dir / f"{capability}.py"
            if path.is_file():
                provider.modules[capability] = _exec_module(provider_id, capability, path)

        if not provider.modules:
            raise ProviderNotFound(f"No compiled modules found for provider '{provider_id}'")
        return provider


class _FreshSourceLoader(importlib.machinery.SourceFileLoader):
    """Source loader that compiles the file as it is on disk, never a cached .pyc."""

    def get_code(self, fullname):
        source = self.get_data(self.path)
        return self.source_to_code(source, self.path)


def _exec_module(provider_id: str, capability: str, path: Path) -> ModuleType:
    module_name = f"streamhub_providers.{provider_id.replace('.', '_')}.{capability}"
    spec = importlib.util.spec_from_file_location(
        module_name, str(path), loader=_FreshSourceLoader(module_name, str(path))
    )
    if spec is None or spec.loader is None:
        raise ProviderLoadError(f"Cannot load {capability} module for provider '{provider_id}'")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        logger.error("Failed to initialise %s/%s: %s", provider_id, path.name, exc)
        raise ProviderLoadError(
            f"Provider '{provider_id}' failed to load {path.name}",
            details=str(exc),
        ) from exc
    return module
