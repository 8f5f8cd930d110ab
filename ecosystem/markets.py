"""
Market provisioning (LOCAL only)
Hands the token factory over to the controller and registers the default markets.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .errors import AuthorizationError, StateError
from .state import EcosystemState
from .upstream import TokenAddresses

logger = logging.getLogger(__name__)

WAD = 10 ** 18

OWNERSHIP_BUDGET = 300_000
ADD_MARKET_BUDGET = 6_000_000

OWNERSHIP_ACTION = 'token_factory_ownership'


@dataclass(frozen=True)
class MarketSpec:
    """Parameters passed to DmmController.addMarket"""
    underlying: str  # attribute of TokenAddresses
    symbol: str
    name: str
    decimals: int
    min_deposit: int
    max_deposit: int
    total_supply: int

    @property
    def action(self) -> str:
        return f'market:{self.symbol}'

    def arguments(self, tokens: TokenAddresses):
        return [
            getattr(tokens, self.underlying),
            self.symbol,
            self.name,
            self.decimals,
            self.min_deposit,
            self.max_deposit,
            self.total_supply,
        ]


DEFAULT_MARKETS = (
    MarketSpec('dai', 'mDAI', 'DMM: DAI', 18, WAD // 10, WAD // 10, 100 * WAD),
    MarketSpec('usdc', 'mUSDC', 'DMM: USDC', 6, 100_000, 100_000, 100_000_000),
)


def transfer_factory_ownership(state: EcosystemState, client, resolver):
    if state.is_done(OWNERSHIP_ACTION):
        logger.info("Token factory ownership already transferred, skipping")
        return
    if not state.has_all(('token_factory', 'controller')):
        raise StateError("Token factory and controller must be deployed before transferring ownership")

    factory = resolver.resolve('DmmTokenFactory')
    logger.info(f"Transferring DmmTokenFactory ownership to controller {state.controller}")
    client.call(factory.abi, state.token_factory, 'transferOwnership', [state.controller], OWNERSHIP_BUDGET)
    state.mark_done(OWNERSHIP_ACTION)


def register_market(state: EcosystemState, client, resolver, tokens: TokenAddresses, market: MarketSpec):
    if state.is_done(market.action):
        logger.info(f"Market {market.symbol} already registered, skipping")
        return
    # The controller mints through the factory, so it has to own it first
    if not state.is_done(OWNERSHIP_ACTION):
        raise AuthorizationError(f"Cannot add market {market.symbol}: token factory is not owned by the controller")

    controller = resolver.resolve('DmmController')
    logger.info(f"Adding market {market.symbol} ({market.name})")
    client.call(controller.abi, state.controller, 'addMarket', market.arguments(tokens), ADD_MARKET_BUDGET)
    state.mark_done(market.action)


def provision_markets(state: EcosystemState, client, resolver, tokens: TokenAddresses,
                      markets: Sequence[MarketSpec] = DEFAULT_MARKETS,
                      checkpoint: Optional[Callable[[], None]] = None):
    """Transfer factory ownership, then register each market in order."""
    transfer_factory_ownership(state, client, resolver)
    if checkpoint:
        checkpoint()
    for market in markets:
        register_market(state, client, resolver, tokens, market)
        if checkpoint:
            checkpoint()
