"""
Web3 transport
Deploys contracts and sends transactions from a single deployer account,
strictly one at a time, each under its own gas budget.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from .artifacts import ContractArtifact
from .errors import AuthorizationError, ConfigurationError, DeploymentError, LinkError, RemoteExecutionError
from .linker import unlinked_libraries

logger = logging.getLogger(__name__)

# Revert reasons raised by ownership / role checks
AUTHORIZATION_REVERTS = (
    'caller is not the owner',
    'not authorized',
    'unauthorized',
    'missing role',
)

ERC20_ABI: List[Dict[str, Any]] = [
    {
        'name': 'transfer',
        'type': 'function',
        'stateMutability': 'nonpayable',
        'inputs': [{'name': 'to', 'type': 'address'}, {'name': 'value', 'type': 'uint256'}],
        'outputs': [{'name': '', 'type': 'bool'}],
    },
    {
        'name': 'balanceOf',
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [{'name': 'owner', 'type': 'address'}],
        'outputs': [{'name': '', 'type': 'uint256'}],
    },
]


def _revert_reason(error: Exception) -> str:
    return getattr(error, 'message', None) or str(error)


def _is_authorization_revert(error: Exception) -> bool:
    message = _revert_reason(error).lower()
    return any(reason in message for reason in AUTHORIZATION_REVERTS)


class ChainClient:
    """Serial transaction sender for one deployer account"""

    def __init__(self, w3: Web3, account: Any, receipt_timeout: int = 300):
        self.w3 = w3
        self.account = account
        self.receipt_timeout = receipt_timeout
        self._nonce: Optional[int] = None

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def chain_id(self) -> int:
        return self.w3.eth.chain_id

    def _next_nonce(self) -> int:
        if self._nonce is None:
            self._nonce = self.w3.eth.get_transaction_count(self.address, 'pending')
        return self._nonce

    def _send(self, tx: Dict[str, Any], budget: int, label: str, error_cls):
        """Estimate, sign, send and wait for one transaction; returns the receipt."""
        try:
            estimate = self.w3.eth.estimate_gas(tx)
        except ContractLogicError as e:
            if error_cls is not DeploymentError and _is_authorization_revert(e):
                raise AuthorizationError(f"{label} rejected: {_revert_reason(e)}")
            raise error_cls(f"{label} reverted: {_revert_reason(e)}")
        except Web3Exception as e:
            # e.g. "gas required exceeds allowance" when the budget is too small, or insufficient funds
            raise error_cls(f"{label} rejected by node (budget {budget}): {e}")
        if estimate > budget:
            raise error_cls(f"{label} needs {estimate} gas, exceeding its budget of {budget}")

        signed = self.account.sign_transaction(tx)
        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Web3Exception as e:
            raise error_cls(f"{label}: node rejected transaction: {e}")
        logger.info(f"{label}: transaction sent {tx_hash.hex()}")

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted as e:
            raise error_cls(f"{label}: no receipt after {self.receipt_timeout}s ({e})")
        except Web3Exception as e:
            raise error_cls(f"{label}: failed waiting for receipt: {e}")

        # The nonce is consumed once the transaction is mined, even when it reverted
        self._nonce = tx['nonce'] + 1

        if receipt['status'] != 1:
            if receipt.get('gasUsed', 0) >= budget:
                raise error_cls(f"{label} ran out of gas (budget {budget})")
            raise error_cls(f"{label} reverted in block {receipt['blockNumber']}")
        logger.info(f"{label}: confirmed in block {receipt['blockNumber']}")
        return receipt

    def _tx_params(self, budget: int) -> Dict[str, Any]:
        return {
            'from': self.address,
            'nonce': self._next_nonce(),
            'gas': int(budget),
            'gasPrice': self.w3.eth.gas_price,
            'chainId': self.chain_id,
        }

    def _build(self, call, budget: int, label: str, error_cls) -> Dict[str, Any]:
        try:
            return call.build_transaction(self._tx_params(budget))
        except Web3Exception as e:
            raise error_cls(f"{label}: could not build transaction: {e}")

    def deploy(self, artifact: ContractArtifact, constructor_args: Sequence[Any], budget: int) -> str:
        """
        Deploy an artifact and return its checksummed address.

        Raises:
            LinkError: bytecode still contains library placeholders
            DeploymentError: revert, timeout or gas budget exceeded
        """
        missing = unlinked_libraries(artifact)
        if missing:
            raise LinkError(f"{artifact.name} has unlinked libraries: {', '.join(missing)}")

        contract = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        tx = self._build(contract.constructor(*constructor_args), budget, f"Deploy {artifact.name}", DeploymentError)
        receipt = self._send(tx, int(budget), f"Deploy {artifact.name}", DeploymentError)
        address = receipt.get('contractAddress')
        if not address:
            raise DeploymentError(f"Deploy {artifact.name}: receipt has no contract address")
        return Web3.to_checksum_address(address)

    def call(self, abi: List[Dict[str, Any]], address: str, method_name: str,
             args: Sequence[Any], budget: int):
        """
        Send a state-changing call and return its receipt.

        Raises:
            AuthorizationError: reverted by an ownership or role check
            RemoteExecutionError: any other revert, timeout or budget overrun
        """
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        function = contract.get_function_by_name(method_name)
        tx = self._build(function(*args), budget, f"{method_name} on {address}", RemoteExecutionError)
        return self._send(tx, int(budget), f"{method_name} on {address}", RemoteExecutionError)


def connect(rpc_url: str, private_key: Optional[str], receipt_timeout: int = 300) -> ChainClient:
    """Connect to the node and load the deployer account."""
    if not private_key:
        raise ConfigurationError("PRIVATE_KEY not found in environment")

    w3 = Web3(Web3.HTTPProvider(rpc_url))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    if not w3.is_connected():
        raise ConfigurationError(f"Could not connect to RPC URL: {rpc_url}")
    logger.info(f"Connected to blockchain at {rpc_url}")

    account = w3.eth.account.from_key(private_key)
    logger.info(f"Using deployer account: {account.address}")
    return ChainClient(w3, account, receipt_timeout=receipt_timeout)
