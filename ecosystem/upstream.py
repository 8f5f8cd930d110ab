"""Addresses produced by the upstream token / library deployment stage."""

import json
import logging
from dataclasses import asdict, dataclass, fields
from typing import Dict

from web3 import Web3

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenAddresses:
    """Pre-deployed tokens: two stable assets, the Chainlink fee token and wrapped ether"""
    dai: str
    usdc: str
    link: str
    weth: str


@dataclass(frozen=True)
class LibraryAddresses:
    """Pre-deployed shared libraries"""
    token_library: str
    string_helpers: str


def _checked(cls, data: Dict[str, str], section: str):
    values = {}
    for field in fields(cls):
        address = data.get(field.name)
        if not address or not Web3.is_address(address):
            raise ConfigurationError(f"Upstream {section}.{field.name} is missing or invalid: {address!r}")
        values[field.name] = Web3.to_checksum_address(address)
    return cls(**values)


def load_upstream(path: str):
    """
    Read token and library addresses from a JSON file of the form
    {"tokens": {"dai": ..., "usdc": ..., "link": ..., "weth": ...},
     "libraries": {"token_library": ..., "string_helpers": ...}}
    """
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read upstream addresses from {path}. Please deploy tokens first. Details: {e}")

    tokens = _checked(TokenAddresses, data.get('tokens', {}), 'tokens')
    libraries = _checked(LibraryAddresses, data.get('libraries', {}), 'libraries')
    logger.info(f"Loaded upstream addresses: {asdict(tokens)}, {asdict(libraries)}")
    return tokens, libraries
