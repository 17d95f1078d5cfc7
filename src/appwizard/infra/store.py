"""Per-provider JSON files holding provisioning outputs."""

from __future__ import annotations

import json
from typing import Any, Protocol, TypeVar

import structlog

from appwizard.config.cli_config import Provider
from appwizard.core.errors import ConfigurationError
from appwizard.infra.base import InfraLayout
from appwizard.infra.models import ResourceKind

logger = structlog.get_logger()


class _Serializable(Protocol):
    def to_dict(self) -> dict[str, Any]:
        ...


T = TypeVar("T")


class InfraDataStore:
    """
    Reads and writes ``prod-deployments/infra/<provider>/<kind>.json``.

    Files are overwritten on every save, never merged. Only one operator is
    expected per project directory, so there is no locking.
    """

    def __init__(self, layout: InfraLayout, provider: Provider):
        self.layout = layout
        self.provider = provider

    def path(self, kind: ResourceKind):
        return self.layout.infra_data_path(self.provider, kind)

    def exists(self, kind: ResourceKind) -> bool:
        return self.path(kind).exists()

    def save(self, kind: ResourceKind, data: _Serializable) -> None:
        path = self.path(kind)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data.to_dict(), indent=2) + "\n", encoding="utf-8")
        logger.info("infra_data_saved", provider=self.provider.value, kind=kind.value, path=str(path))

    def load(self, kind: ResourceKind, cls: type[T]) -> T:
        path = self.path(kind)
        if not path.exists():
            raise ConfigurationError(
                f"No {kind.value} infrastructure data found; provision {kind.value} first",
                details={"path": str(path)},
            )
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Corrupt infrastructure data file {path}: {e}") from e
        recorded = data.setdefault("provider", self.provider.value)
        if recorded != self.provider.value:
            raise ConfigurationError(
                f"{path.name} was written for provider '{recorded}', not '{self.provider.value}'",
                details={"path": str(path)},
            )
        return cls.from_dict(data)  # type: ignore[attr-defined]
