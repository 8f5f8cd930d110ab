"""
DMM Ecosystem Deployment
========================

Provisioning pipeline for the DMM protocol contracts:
- environment: environment policy (oracle endpoint, job id, gated steps)
- artifacts: truffle artifact loading and network detection
- linker: library placeholder binding
- chain: web3 transport (deploy / call with per-step gas budget)
- state: write-once ecosystem address record and its persistence
- orchestrator: dependency-ordered deployment pipeline
- markets: local market provisioning
"""

from .errors import (
    ProvisioningError,
    ConfigurationError,
    ArtifactError,
    LinkError,
    DeploymentError,
    AuthorizationError,
    RemoteExecutionError,
    StateError,
)
from .environment import EnvironmentConfig, load_environment, resolve
from .state import EcosystemState, StateStore
from .upstream import LibraryAddresses, TokenAddresses, load_upstream
from .orchestrator import provision_ecosystem

__version__ = "1.0.0"

__all__ = [
    'ProvisioningError',
    'ConfigurationError',
    'ArtifactError',
    'LinkError',
    'DeploymentError',
    'AuthorizationError',
    'RemoteExecutionError',
    'StateError',
    'EnvironmentConfig',
    'load_environment',
    'resolve',
    'EcosystemState',
    'StateStore',
    'LibraryAddresses',
    'TokenAddresses',
    'load_upstream',
    'provision_ecosystem',
]
