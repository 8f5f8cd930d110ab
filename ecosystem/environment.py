"""
Environment policy
Maps the deployment environment to its Chainlink oracle settings and decides
which post-deployment steps run.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

LOCAL = 'LOCAL'
TESTNET = 'TESTNET'
PRODUCTION = 'PRODUCTION'

ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'
ZERO_JOB_ID = '0x0000000000000000000000000000000000000000000000000000000000000000'


@dataclass(frozen=True)
class EnvironmentConfig:
    """Oracle endpoint and job id for one environment"""
    name: str
    oracle_address: str
    job_id: str

    @property
    def runs_oracle_funding(self) -> bool:
        return self.name in (TESTNET, PRODUCTION)

    @property
    def runs_market_provisioning(self) -> bool:
        return self.name == LOCAL


ENVIRONMENTS: Dict[str, EnvironmentConfig] = {
    LOCAL: EnvironmentConfig(LOCAL, ZERO_ADDRESS, ZERO_JOB_ID),
    TESTNET: EnvironmentConfig(
        TESTNET,
        '0x7AFe1118Ea78C1eae84ca8feE5C65Bc76CcF879e',
        '0x00000000000000000000000000000000d4b380b30cb64722b8843ead232985c3',
    ),
    PRODUCTION: EnvironmentConfig(PRODUCTION, ZERO_ADDRESS, ZERO_JOB_ID),
}


def load_environment(environment: str) -> EnvironmentConfig:
    """
    Look up the configuration for an environment name.

    Args:
        environment: one of LOCAL, TESTNET, PRODUCTION (case-sensitive)

    Returns:
        The matching EnvironmentConfig

    Raises:
        ConfigurationError: for any other value
    """
    config = ENVIRONMENTS.get(environment) if isinstance(environment, str) else None
    if config is None:
        raise ConfigurationError(f"Invalid environment, found {environment!r}")
    logger.info(f"Using environment {config.name} (oracle {config.oracle_address})")
    return config


def resolve(environment: str) -> Tuple[str, str]:
    """Return the (oracle endpoint, job id) pair for an environment."""
    config = load_environment(environment)
    return config.oracle_address, config.job_id
