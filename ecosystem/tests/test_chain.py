#!/usr/bin/env python3
"""
Tests for the web3 transport
Web3 is mocked; these check gas budgets, nonce handling and error mapping.
"""

import pytest
from unittest.mock import MagicMock, patch
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception, Web3RPCError

from ecosystem.chain import ERC20_ABI, ChainClient, connect
from ecosystem.errors import (
    AuthorizationError,
    ConfigurationError,
    DeploymentError,
    LinkError,
    RemoteExecutionError,
)
from ecosystem.tests.fakes import make_artifact

DEPLOYER = '0x' + 'de' * 20
CONTRACT = '0x' + 'ca' * 20
TOKEN = '0x' + '01' * 20


def make_w3(estimate=1_000_000, status=1, gas_used=900_000, nonce=7):
    w3 = MagicMock()
    w3.eth.chain_id = 1337
    w3.eth.gas_price = 10
    w3.eth.get_transaction_count.return_value = nonce
    w3.eth.estimate_gas.return_value = estimate
    w3.eth.wait_for_transaction_receipt.return_value = {
        'status': status,
        'blockNumber': 12,
        'gasUsed': gas_used,
        'contractAddress': CONTRACT,
    }
    contract = w3.eth.contract.return_value
    contract.constructor.return_value.build_transaction.side_effect = lambda params: dict(params)
    contract.get_function_by_name.return_value.return_value.build_transaction.side_effect = \
        lambda params: dict(params)
    return w3


def make_client(w3):
    account = MagicMock()
    account.address = DEPLOYER
    account.sign_transaction.return_value.raw_transaction = b'signed'
    return ChainClient(w3, account, receipt_timeout=5)


class TestDeploy:
    """Test class for ChainClient.deploy"""

    def test_deploy_returns_checksum_address(self):
        """Deploy sends one signed transaction carrying the full budget"""
        w3 = make_w3()
        client = make_client(w3)

        address = client.deploy(make_artifact('DmmBlacklistable'), [], 4_000_000)

        assert address == Web3.to_checksum_address(CONTRACT)
        tx = w3.eth.estimate_gas.call_args[0][0]
        assert tx['gas'] == 4_000_000
        assert tx['nonce'] == 7
        assert tx['from'] == DEPLOYER
        assert tx['chainId'] == 1337
        w3.eth.send_raw_transaction.assert_called_once_with(b'signed')
        w3.eth.wait_for_transaction_receipt.assert_called_once()

    def test_constructor_arguments_passed_through(self):
        w3 = make_w3()
        make_client(w3).deploy(make_artifact('DmmEtherFactory'), [TOKEN], 6_000_000)
        w3.eth.contract.return_value.constructor.assert_called_once_with(TOKEN)

    def test_nonce_advances_serially(self):
        """The pending nonce is read once and advanced per mined transaction"""
        w3 = make_w3()
        client = make_client(w3)
        client.deploy(make_artifact('InterestRateImplV1'), [], 4_000_000)
        client.deploy(make_artifact('DmmBlacklistable'), [], 4_000_000)

        nonces = [call[0][0]['nonce'] for call in w3.eth.estimate_gas.call_args_list]
        assert nonces == [7, 8]
        w3.eth.get_transaction_count.assert_called_once_with(DEPLOYER, 'pending')

    def test_estimate_over_budget_is_not_sent(self):
        """An estimate above the step budget fails before signing"""
        w3 = make_w3(estimate=4_000_001)
        with pytest.raises(DeploymentError, match="exceeding its budget"):
            make_client(w3).deploy(make_artifact('DmmController'), [], 4_000_000)
        w3.eth.send_raw_transaction.assert_not_called()

    def test_reverted_estimate_raises_deployment_error(self):
        w3 = make_w3()
        w3.eth.estimate_gas.side_effect = ContractLogicError('execution reverted: Ownable: caller is not the owner')
        with pytest.raises(DeploymentError, match="reverted"):
            make_client(w3).deploy(make_artifact('DmmController'), [], 4_000_000)

    def test_out_of_gas_receipt(self):
        """A failed receipt that used the whole budget is reported as out of gas"""
        w3 = make_w3(status=0, gas_used=6_000_000)
        client = make_client(w3)
        with pytest.raises(DeploymentError, match="ran out of gas"):
            client.deploy(make_artifact('DmmTokenFactory'), [], 6_000_000)
        # A mined transaction consumes the nonce even when it failed
        assert client._nonce == 8

    def test_reverted_receipt(self):
        w3 = make_w3(status=0, gas_used=50_000)
        with pytest.raises(DeploymentError, match="reverted in block 12"):
            make_client(w3).deploy(make_artifact('DmmTokenFactory'), [], 6_000_000)

    def test_receipt_timeout(self):
        """No receipt within the timeout is a deployment error"""
        w3 = make_w3()
        w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted('timed out')
        with pytest.raises(DeploymentError, match="no receipt"):
            make_client(w3).deploy(make_artifact('DmmBlacklistable'), [], 4_000_000)

    def test_node_rejection_maps_to_deployment_error(self):
        """A node-side estimate failure is a DeploymentError and nothing is sent"""
        w3 = make_w3()
        w3.eth.estimate_gas.side_effect = Web3RPCError('gas required exceeds allowance (4000000)')
        with pytest.raises(DeploymentError, match="rejected by node"):
            make_client(w3).deploy(make_artifact('DmmController'), [], 4_000_000)
        w3.eth.send_raw_transaction.assert_not_called()

    def test_build_failure_maps_to_deployment_error(self):
        w3 = make_w3()
        w3.eth.contract.return_value.constructor.return_value.build_transaction.side_effect = \
            Web3Exception('insufficient funds for gas * price + value')
        with pytest.raises(DeploymentError, match="could not build transaction"):
            make_client(w3).deploy(make_artifact('DmmBlacklistable'), [], 4_000_000)
        w3.eth.send_raw_transaction.assert_not_called()

    def test_receipt_rpc_error_maps_to_deployment_error(self):
        """An RPC failure while waiting for the receipt is a DeploymentError"""
        w3 = make_w3()
        w3.eth.wait_for_transaction_receipt.side_effect = Web3RPCError('header not found')
        with pytest.raises(DeploymentError, match="failed waiting for receipt"):
            make_client(w3).deploy(make_artifact('DmmBlacklistable'), [], 4_000_000)

    def test_unlinked_artifact_is_rejected(self):
        """Placeholders left in the bytecode stop the deploy before web3 is touched"""
        w3 = make_w3()
        with pytest.raises(LinkError, match="DmmTokenLibrary"):
            make_client(w3).deploy(make_artifact('DmmTokenFactory', 'DmmTokenLibrary'), [], 6_000_000)
        w3.eth.contract.assert_not_called()


class TestCall:
    """Test class for ChainClient.call"""

    def test_call_returns_receipt(self):
        """The method is looked up by name and called with the given arguments"""
        w3 = make_w3(estimate=50_000)
        receipt = make_client(w3).call(ERC20_ABI, TOKEN, 'transfer', [CONTRACT, 10], 300_000)

        assert receipt['status'] == 1
        contract = w3.eth.contract.return_value
        contract.get_function_by_name.assert_called_once_with('transfer')
        contract.get_function_by_name.return_value.assert_called_once_with(CONTRACT, 10)

    def test_ownership_revert_maps_to_authorization_error(self):
        """Ownership reverts on a call surface as AuthorizationError"""
        w3 = make_w3()
        w3.eth.estimate_gas.side_effect = ContractLogicError('execution reverted: Ownable: caller is not the owner')
        with pytest.raises(AuthorizationError):
            make_client(w3).call([], CONTRACT, 'addMarket', [], 6_000_000)

    def test_other_revert_maps_to_remote_execution_error(self):
        w3 = make_w3()
        w3.eth.estimate_gas.side_effect = ContractLogicError('execution reverted: ERC20: transfer amount exceeds balance')
        with pytest.raises(RemoteExecutionError, match="exceeds balance"):
            make_client(w3).call(ERC20_ABI, TOKEN, 'transfer', [CONTRACT, 10], 300_000)

    def test_node_rejection_maps_to_remote_execution_error(self):
        """A node-side estimate failure on a call is a RemoteExecutionError"""
        w3 = make_w3()
        w3.eth.estimate_gas.side_effect = Web3RPCError('gas required exceeds allowance (300000)')
        with pytest.raises(RemoteExecutionError, match="rejected by node"):
            make_client(w3).call(ERC20_ABI, TOKEN, 'transfer', [CONTRACT, 10], 300_000)
        w3.eth.send_raw_transaction.assert_not_called()

    def test_failed_receipt_maps_to_remote_execution_error(self):
        w3 = make_w3(status=0, gas_used=20_000)
        with pytest.raises(RemoteExecutionError):
            make_client(w3).call([], CONTRACT, 'getCollateralValue', [TOKEN], 1_000_000)


class TestConnect:
    """Test class for connect"""

    def test_missing_private_key(self):
        with pytest.raises(ConfigurationError, match="PRIVATE_KEY"):
            connect('http://localhost:8545', None)

    @patch('ecosystem.chain.Web3')
    def test_unreachable_node(self, mock_web3):
        mock_web3.return_value.is_connected.return_value = False
        with pytest.raises(ConfigurationError, match="Could not connect"):
            connect('http://localhost:1', '0x' + '11' * 32)

    @patch('ecosystem.chain.Web3')
    def test_connect_loads_account(self, mock_web3):
        w3 = mock_web3.return_value
        w3.is_connected.return_value = True
        w3.eth.account.from_key.return_value.address = DEPLOYER

        client = connect('http://localhost:8545', '0x' + '11' * 32, receipt_timeout=30)

        assert client.address == DEPLOYER
        assert client.receipt_timeout == 30
        w3.middleware_onion.inject.assert_called_once()
