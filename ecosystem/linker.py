"""Library linking for truffle-style bytecode placeholders."""

import logging
from typing import List

from web3 import Web3

from .artifacts import ContractArtifact
from .errors import LinkError

logger = logging.getLogger(__name__)

PLACEHOLDER_LENGTH = 40



def placeholder(library_name: str) -> str:
    """`__Name____...` padded with underscores to the width of an address."""
    return ('__' + library_name + '_' * PLACEHOLDER_LENGTH)[:PLACEHOLDER_LENGTH]


def link(artifact: ContractArtifact, library_name: str, library_address: str):
    """
    Bind a deployed library address into an artifact's bytecode.

    Args:
        artifact: artifact to link (modified in place)
        library_name: name the bytecode placeholder was compiled with
        library_address: deployed library address

    Raises:
        LinkError: invalid or zero address, or no placeholder for the library
    """
    if not library_address or not Web3.is_address(library_address) or int(library_address, 16) == 0:
        raise LinkError(f"Cannot link {library_name} into {artifact.name}: invalid address {library_address!r}")

    token = placeholder(library_name)
    if token not in artifact.bytecode:
        raise LinkError(f"{artifact.name} has no placeholder for library {library_name}")

    hex_address = library_address[2:].lower() if library_address.startswith('0x') else library_address.lower()
    artifact.bytecode = artifact.bytecode.replace(token, hex_address)
    artifact.deployed_bytecode = artifact.deployed_bytecode.replace(token, hex_address)
    artifact.links[library_name] = Web3.to_checksum_address(library_address)
    logger.info(f"Linked {library_name} ({library_address}) into {artifact.name}")


def unlinked_libraries(artifact: ContractArtifact) -> List[str]:
    """Library names whose placeholders are still present in the bytecode."""
    names = []
    start = artifact.bytecode.find('__')
    while start != -1:
        chunk = artifact.bytecode[start:start + PLACEHOLDER_LENGTH]
        name = chunk[2:].rstrip('_')
        if name and name not in names:
            names.append(name)
        start = artifact.bytecode.find('__', start + PLACEHOLDER_LENGTH)
    return names
