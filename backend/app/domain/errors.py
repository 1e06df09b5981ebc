from dataclasses import dataclass
from typing import List


@dataclass
class DomainError(Exception):
    detail: str
    title: str = "Domain Error"
    type: str = "https://example.com/problems/domain-error"
    errors: List[dict] | None = None


class FeatureFlagStoreError(RuntimeError):
    """Flag storage was unreachable or returned a row that cannot be read."""


@dataclass
class IntegrationNotImplementedError(Exception):
    """Raised when an integration flag is enabled before its live path exists."""

    integration: str
    detail: str

    def __str__(self) -> str:
        return f"{self.integration}: {self.detail}"


class IntegrationConfigurationError(RuntimeError):
    """A live integration was requested but its credentials are missing."""


@dataclass
class IntegrationUpstreamError(Exception):
    """An external provider answered with a body that cannot be read."""

    integration: str
    detail: str

    def __str__(self) -> str:
        return f"{self.integration}: {self.detail}"
