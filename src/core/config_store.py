"""
JSON document store for the webhook URL and the client/technician registries.
"""

import json
from pathlib import Path

from pydantic import ValidationError

from core.config import CONFIG_STORE_PATH, DEFAULT_DEAL_TYPE, DEFAULT_WEBHOOK_URL
from models.registry import Client, StorageConfig, Technician


class ConfigStoreError(Exception):
    """Raised when the configuration document cannot be read or written."""


def default_config() -> StorageConfig:
    """Configuration served when nothing has been saved yet."""
    return StorageConfig(
        webhook_url=DEFAULT_WEBHOOK_URL,
        clients=[
            Client(id="def-1", name="OPH DE DRANCY", erp_code="411DRA038", deal_type=DEFAULT_DEAL_TYPE),
            Client(id="def-2", name="VILOGIA", erp_code="411VIL001", deal_type="O1-A"),
        ],
        technicians=[
            Technician(
                id="p-1",
                name="Equipe A - Standard",
                company="SAMDB",
                phone="0148365214",
                specialty="Menuiserie",
                payroll_code="SAM-A1",
            ),
        ],
    )


class ConfigStore:
    """Load/save contract over a single JSON file."""

    def __init__(self, path: Path = CONFIG_STORE_PATH):
        self.path = Path(path)

    def load(self) -> StorageConfig:
        """Read the stored configuration, falling back to the defaults if absent."""
        if not self.path.exists():
            print(f"No configuration at {self.path}, using defaults")
            return default_config()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return StorageConfig.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigStoreError(f"Invalid configuration file {self.path}: {e}") from e

    def save(self, config: StorageConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = config.model_dump(mode="json", by_alias=True)
        try:
            self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise ConfigStoreError(f"Cannot write configuration to {self.path}: {e}") from e

    def update(
        self,
        webhook_url: str | None = None,
        clients: list[Client] | None = None,
        technicians: list[Technician] | None = None,
    ) -> StorageConfig:
        """Replace only the given sections and save."""
        current = self.load()
        updated = StorageConfig(
            webhook_url=webhook_url if webhook_url is not None else current.webhook_url,
            clients=clients if clients is not None else current.clients,
            technicians=technicians if technicians is not None else current.technicians,
        )
        self.save(updated)
        return updated
