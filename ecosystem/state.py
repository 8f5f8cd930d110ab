"""
Ecosystem state
Write-once record of the addresses resolved during a provisioning run,
persisted after every step so an aborted run can be resumed.
"""

import os
import json
import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from .errors import ConfigurationError, StateError

logger = logging.getLogger(__name__)

COMPONENTS = (
    'interest_rate_model',
    'collateral_valuator',
    'underlying_token_valuator',
    'ether_factory',
    'token_factory',
    'blacklist',
    'controller',
)

# Addresses reported at the end of a run
REPORTED_COMPONENTS = (
    'interest_rate_model',
    'collateral_valuator',
    'underlying_token_valuator',
    'token_factory',
    'blacklist',
    'controller',
)

DISPLAY_NAMES = {
    'interest_rate_model': 'InterestRateImplV1',
    'collateral_valuator': 'ChainlinkCollateralValuator',
    'underlying_token_valuator': 'UnderlyingTokenValuatorImplV1',
    'ether_factory': 'DmmEtherFactory',
    'token_factory': 'DmmTokenFactory',
    'blacklist': 'DmmBlacklistable',
    'controller': 'DmmController',
}


class EcosystemState:
    """Mapping from component name to deployed address; fields are never overwritten"""

    def __init__(self, addresses: Optional[Dict[str, str]] = None, completed_actions: Optional[List[str]] = None):
        self._addresses: Dict[str, str] = {}
        self._actions: List[str] = []
        self._frozen = False
        self.environment: Optional[str] = None
        self.chain_id: Optional[int] = None
        for name, address in (addresses or {}).items():
            self.set(name, address)
        for action in completed_actions or []:
            self.mark_done(action)

    def _check_mutable(self):
        if self._frozen:
            raise StateError("Ecosystem state is read-only after the run")

    def set(self, name: str, address: str):
        self._check_mutable()
        if name not in COMPONENTS:
            raise StateError(f"Unknown ecosystem component {name!r}")
        if not address:
            raise StateError(f"Refusing to record an empty address for {name}")
        if name in self._addresses:
            raise StateError(f"{name} is already recorded at {self._addresses[name]}")
        self._addresses[name] = address

    def get(self, name: str) -> Optional[str]:
        return self._addresses.get(name)

    def __getattr__(self, name: str) -> Optional[str]:
        if name in COMPONENTS:
            return self._addresses.get(name)
        raise AttributeError(name)

    def __contains__(self, name: str) -> bool:
        return name in self._addresses or name in self._actions

    def has_all(self, names) -> bool:
        return all(self._addresses.get(name) for name in names)

    def bind(self, environment: str, chain_id: int):
        """
        Tie the state to the environment and chain it was produced on.

        Raises:
            ConfigurationError: the state was recorded for a different environment or chain
        """
        if self.environment is not None and self.environment != environment:
            raise ConfigurationError(f"Recorded state belongs to environment {self.environment}, not {environment}")
        if self.chain_id is not None and self.chain_id != chain_id:
            raise ConfigurationError(f"Recorded state belongs to chain {self.chain_id}, not {chain_id}")
        self.environment = environment
        self.chain_id = chain_id

    def mark_done(self, action: str):
        """Record an address-less step (funding, ownership transfer, market registration)."""
        self._check_mutable()
        if action in self._actions:
            raise StateError(f"Action {action!r} is already recorded")
        self._actions.append(action)

    def is_done(self, action: str) -> bool:
        return action in self._actions

    @property
    def completed_actions(self) -> List[str]:
        return list(self._actions)

    def freeze(self) -> 'EcosystemState':
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def view(self) -> Mapping[str, str]:
        return MappingProxyType(self._addresses)

    def report(self) -> Dict[str, Optional[str]]:
        return {name: self._addresses.get(name) for name in REPORTED_COMPONENTS}

    def to_dict(self) -> Dict:
        return {
            'environment': self.environment,
            'chain_id': self.chain_id,
            'contracts': dict(self._addresses),
            'actions': list(self._actions),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'EcosystemState':
        state = cls(data.get('contracts', {}), data.get('actions', []))
        state.environment = data.get('environment')
        state.chain_id = data.get('chain_id')
        return state

    def __repr__(self):
        return f"EcosystemState({self._addresses!r}, actions={self._actions!r})"


class StateStore:
    """Persists ecosystem state as <directory>/<run_id>.json"""

    def __init__(self, directory: str):
        self.directory = os.path.expanduser(directory)

    def path(self, run_id: str) -> str:
        return os.path.join(self.directory, f'{run_id}.json')

    def load(self, run_id: str) -> EcosystemState:
        path = self.path(run_id)
        if not os.path.exists(path):
            return EcosystemState()
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateError(f"Deployment state at {path} is corrupt: {e}")
        if not isinstance(data, dict):
            raise StateError(f"Deployment state at {path} is not a JSON object")
        try:
            state = EcosystemState.from_dict(data)
        except (StateError, AttributeError, TypeError) as e:
            raise StateError(f"Deployment state at {path} is invalid: {e}")
        logger.info(f"Resuming run {run_id}: {len(state.view())} contracts, "
                    f"{len(state.completed_actions)} actions already recorded")
        return state

    def save(self, run_id: str, state: EcosystemState):
        os.makedirs(self.directory, exist_ok=True)
        path = self.path(run_id)
        tmp_path = path + '.tmp'
        with open(tmp_path, 'w') as f:
            json.dump(dict(state.to_dict(), run_id=run_id), f, indent=2)
        os.replace(tmp_path, path)

    def clear(self, run_id: str):
        path = self.path(run_id)
        if os.path.exists(path):
            os.remove(path)
