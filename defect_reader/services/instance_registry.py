"""
Instance Registry
=================
Named remote defect service instances.

A build target names an instance; the registry resolves that name to
connection details and hands out a DefectService for it.

YAML format (DEFECT_INSTANCES_FILE):

    instances:
      - name: main
        host: coverity.example.com
        port: 8443
        user: builder
        password: secret
        use_ssl: true

Without a file, a single instance is built from the COVERITY_* env vars.
"""
import logging
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel

from defect_reader.core import config
from defect_reader.services.defect_service import DefectService, HttpDefectService

logger = logging.getLogger(__name__)


class InstanceConfigError(Exception):
    """Instance configuration is missing or unreadable."""


class UnknownInstanceError(InstanceConfigError):
    """Target names an instance that is not configured."""


class CIMInstance(BaseModel):
    name: str
    host: str
    port: int = 8080
    user: str = ""
    password: str = ""
    use_ssl: bool = False

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def get_defect_service(self, timeout: Optional[float] = None) -> HttpDefectService:
        return HttpDefectService(
            self.base_url,
            user=self.user,
            password=self.password,
            timeout=timeout if timeout is not None else config.DEFECT_SERVICE_TIMEOUT,
        )


class InstanceRegistry:

    def __init__(self, instances: Optional[List[CIMInstance]] = None) -> None:
        self._instances: Dict[str, CIMInstance] = {}
        for instance in instances or []:
            self._instances[instance.name] = instance

    def __len__(self) -> int:
        return len(self._instances)

    def names(self) -> List[str]:
        return sorted(self._instances)

    def get_instance(self, name: str) -> Optional[CIMInstance]:
        return self._instances.get(name or config.COVERITY_INSTANCE)

    def get_defect_service(self, name: str) -> DefectService:
        """
        Resolve name and open its service.

        Raises UnknownInstanceError when name is not configured.
        """
        instance = self.get_instance(name)
        if instance is None:
            raise UnknownInstanceError(
                f"Instance '{name}' is not configured. Known instances: {self.names()}"
            )
        return instance.get_defect_service()

    @classmethod
    def from_yaml(cls, path: str) -> "InstanceRegistry":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping with an 'instances' list")

        entries = data.get("instances") or []
        instances = [CIMInstance.model_validate(entry) for entry in entries]
        logger.info("Loaded %d defect service instance(s) from %s", len(instances), path)
        return cls(instances)

    @classmethod
    def from_env(cls) -> "InstanceRegistry":
        if not config.COVERITY_HOST:
            logger.warning("COVERITY_HOST not set: no defect service instance configured")
            return cls()
        return cls([
            CIMInstance(
                name=config.COVERITY_INSTANCE,
                host=config.COVERITY_HOST,
                port=config.COVERITY_PORT,
                user=config.COVERITY_USER,
                password=config.COVERITY_PASSWORD,
                use_ssl=config.COVERITY_USE_SSL,
            )
        ])


def load_registry() -> InstanceRegistry:
    """
    Build the registry from DEFECT_INSTANCES_FILE or the COVERITY_* env vars.

    Raises InstanceConfigError when the instances file cannot be read or parsed.
    """
    if not config.DEFECT_INSTANCES_FILE:
        return InstanceRegistry.from_env()
    try:
        return InstanceRegistry.from_yaml(config.DEFECT_INSTANCES_FILE)
    except (OSError, yaml.YAMLError, ValueError) as e:
        raise InstanceConfigError(
            f"Cannot load defect service instances from {config.DEFECT_INSTANCES_FILE}: {e}"
        ) from e


def resolve_defect_service(name: str) -> DefectService:
    """Load the registry and open the service for name. Raises InstanceConfigError."""
    return load_registry().get_defect_service(name)
