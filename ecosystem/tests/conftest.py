"""Shared fixtures for the deployer tests."""

import pytest

from ecosystem.tests.fakes import FakeClient, FakeResolver
from ecosystem.upstream import LibraryAddresses, TokenAddresses


@pytest.fixture
def tokens():
    return TokenAddresses(
        dai='0x' + '0d' * 20,
        usdc='0x' + '0c' * 20,
        link='0x' + '01' * 20,
        weth='0x' + '0e' * 20,
    )


@pytest.fixture
def libraries():
    return LibraryAddresses(token_library='0x' + '11' * 20, string_helpers='0x' + '22' * 20)


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def client():
    return FakeClient()
