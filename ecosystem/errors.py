"""Error taxonomy for the provisioning pipeline."""

from typing import Any, Optional


class ProvisioningError(Exception):
    """Base error. `state` holds the partially populated ecosystem when a run aborts."""

    def __init__(self, message: str, state: Optional[Any] = None):
        super().__init__(message)
        self.state = state


class ConfigurationError(ProvisioningError):
    """Unrecognized environment or missing configuration value."""


class ArtifactError(ProvisioningError):
    """Artifact file missing or unreadable."""


class LinkError(ProvisioningError):
    """Library binding failed or an artifact still has unlinked libraries."""


class DeploymentError(ProvisioningError):
    """Deployment reverted, timed out or exceeded its gas budget."""


class AuthorizationError(ProvisioningError):
    """Privileged call attempted before the required ownership transfer."""


class RemoteExecutionError(ProvisioningError):
    """Any other reverted post-deploy call."""


class StateError(ProvisioningError):
    """Attempt to overwrite a recorded ecosystem field or mutate a frozen state."""
