"""
Truffle artifact loading
Reads compiled contract JSON (abi, bytecode, networks) from a build directory.
"""

import os
import json
import logging
from typing import Any, Dict, List, Optional

from .errors import ArtifactError

logger = logging.getLogger(__name__)


class ContractArtifact:
    """A compiled contract interface plus its (possibly unlinked) bytecode"""

    def __init__(self, name: str, abi: List[Dict[str, Any]], bytecode: str,
                 deployed_bytecode: str = '', networks: Optional[Dict[str, Any]] = None):
        self.name = name
        self.abi = abi
        self.bytecode = bytecode
        self.deployed_bytecode = deployed_bytecode
        self.networks = networks or {}
        self.network_id: Optional[str] = None
        self.links: Dict[str, str] = {}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'ContractArtifact':
        try:
            return cls(
                name=data['contractName'],
                abi=data['abi'],
                bytecode=data['bytecode'],
                deployed_bytecode=data.get('deployedBytecode', ''),
                networks=data.get('networks', {}),
            )
        except KeyError as e:
            raise ArtifactError(f"Artifact is missing field {e}")

    def detect_network(self, chain_id: int):
        """
        Select the network this artifact is deployed against.

        Resets the link table, so library linking has to happen afterwards.
        """
        self.network_id = str(chain_id)
        self.links = {}
        recorded = self.networks.get(self.network_id, {}).get('address')
        if recorded:
            logger.info(f"{self.name}: previous deployment on network {self.network_id} at {recorded}")

    def __repr__(self):
        return f"ContractArtifact({self.name!r})"


class ArtifactResolver:
    """Resolves artifact names to fresh ContractArtifact instances"""

    def __init__(self, artifacts_dir: str):
        self.artifacts_dir = artifacts_dir

    def resolve(self, name: str) -> ContractArtifact:
        path = os.path.join(self.artifacts_dir, f'{name}.json')
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ArtifactError(f"Artifact {name} not found at {path}")
        except json.JSONDecodeError as e:
            raise ArtifactError(f"Artifact {name} is not valid JSON: {e}")
        data.setdefault('contractName', name)
        return ContractArtifact.from_json(data)
