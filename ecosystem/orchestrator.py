"""
Deployment orchestrator
Runs the DMM deployment as a dependency-ordered graph of steps. Every step
either deploys one contract (recording its address) or performs one
post-deployment call (recording that it happened).
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .chain import ERC20_ABI
from .environment import EnvironmentConfig, load_environment
from .errors import ConfigurationError, ProvisioningError, StateError
from .linker import link
from .markets import DEFAULT_MARKETS, WAD, MarketSpec, provision_markets
from .state import DISPLAY_NAMES, EcosystemState, StateStore
from .upstream import LibraryAddresses, TokenAddresses

logger = logging.getLogger(__name__)

COLLATERAL_VALUATOR_FEE = WAD // 10          # 0.1 LINK per request
ORACLE_FUNDING_AMOUNT = 10 * WAD             # 10 LINK
MIN_COLLATERALIZATION = WAD                  # 1.0
MIN_RESERVE_RATIO = WAD // 2                 # 0.5


@dataclass
class RunContext:
    env: EnvironmentConfig
    tokens: TokenAddresses
    libraries: LibraryAddresses
    resolver: Any
    client: Any


def _no_args(state: EcosystemState, ctx: RunContext) -> List[Any]:
    return []


def _always(env: EnvironmentConfig) -> bool:
    return True


@dataclass(frozen=True)
class Step:
    """
    One node of the deployment graph.

    Deploy steps name an `artifact`; action steps provide `run` instead.
    `requires` lists state fields the step reads, `after` lists steps that
    only have to happen first.
    """
    key: str
    artifact: Optional[str] = None
    args: Callable[[EcosystemState, RunContext], List[Any]] = _no_args
    budget: int = 0
    requires: Tuple[str, ...] = ()
    after: Tuple[str, ...] = ()
    links: Tuple[Tuple[str, str], ...] = ()  # (library name, LibraryAddresses attribute)
    detect_network: bool = False
    enabled: Callable[[EnvironmentConfig], bool] = _always
    run: Optional[Callable[[EcosystemState, RunContext], None]] = None

    @property
    def deploys(self) -> bool:
        return self.artifact is not None


def _fund_collateral_valuator(state: EcosystemState, ctx: RunContext):
    logger.info("Sending 10 LINK to collateral valuator")
    ctx.client.call(ERC20_ABI, ctx.tokens.link, 'transfer',
                    [state.collateral_valuator, ORACLE_FUNDING_AMOUNT], 300_000)


def _request_collateral_value(state: EcosystemState, ctx: RunContext):
    logger.info(f"Sending chainlink request using oracle {ctx.env.oracle_address}")
    valuator = ctx.resolver.resolve('ChainlinkCollateralValuator')
    ctx.client.call(valuator.abi, state.collateral_valuator, 'getCollateralValue',
                    [ctx.env.oracle_address], 1_000_000)


def _funds_oracle(env: EnvironmentConfig) -> bool:
    return env.runs_oracle_funding


PIPELINE: Tuple[Step, ...] = (
    Step('interest_rate_model', artifact='InterestRateImplV1', budget=4_000_000),
    Step(
        'collateral_valuator',
        artifact='ChainlinkCollateralValuator',
        args=lambda state, ctx: [ctx.tokens.link, COLLATERAL_VALUATOR_FEE, ctx.env.job_id],
        budget=4_000_000,
    ),
    Step(
        'underlying_token_valuator',
        artifact='UnderlyingTokenValuatorImplV1',
        args=lambda state, ctx: [ctx.tokens.dai, ctx.tokens.usdc],
        budget=4_000_000,
        links=(('StringHelpers', 'string_helpers'),),
        detect_network=True,
    ),
    Step(
        'ether_factory',
        artifact='DmmEtherFactory',
        args=lambda state, ctx: [ctx.tokens.weth],
        budget=6_000_000,
        links=(('DmmTokenLibrary', 'token_library'),),
        detect_network=True,
    ),
    Step(
        'token_factory',
        artifact='DmmTokenFactory',
        budget=6_000_000,
        links=(('DmmTokenLibrary', 'token_library'),),
        detect_network=True,
    ),
    Step('blacklist', artifact='DmmBlacklistable', budget=4_000_000),
    Step('oracle_funding', run=_fund_collateral_valuator,
         requires=('collateral_valuator',), enabled=_funds_oracle),
    Step('oracle_request', run=_request_collateral_value,
         requires=('collateral_valuator',), after=('oracle_funding',), enabled=_funds_oracle),
    Step(
        'controller',
        artifact='DmmController',
        args=lambda state, ctx: [
            state.interest_rate_model,
            state.collateral_valuator,
            state.underlying_token_valuator,
            state.ether_factory,
            state.token_factory,
            state.blacklist,
            MIN_COLLATERALIZATION,
            MIN_RESERVE_RATIO,
            ctx.tokens.weth,
        ],
        budget=4_000_000,
        requires=(
            'interest_rate_model',
            'collateral_valuator',
            'underlying_token_valuator',
            'ether_factory',
            'token_factory',
            'blacklist',
        ),
        after=('oracle_request',),
    ),
)


def schedule(steps: Sequence[Step], env: EnvironmentConfig) -> List[Step]:
    """
    Order the enabled steps so every step follows its dependencies.

    Ties are broken by declaration order. Ordering-only dependencies on
    disabled steps are dropped; a `requires` on a disabled or unknown step is
    a configuration error, as is a cycle.
    """
    known = {step.key for step in steps}
    active = [step for step in steps if step.enabled(env)]
    active_keys = {step.key for step in active}

    for step in active:
        for dep in step.requires + step.after:
            if dep not in known:
                raise ConfigurationError(f"Step {step.key} depends on unknown step {dep}")
        for dep in step.requires:
            if dep not in active_keys:
                raise ConfigurationError(f"Step {step.key} requires {dep}, which is disabled in {env.name}")

    order: List[Step] = []
    done = set()
    pending = list(active)
    while pending:
        for step in pending:
            deps = set(step.requires) | {dep for dep in step.after if dep in active_keys}
            if deps <= done:
                break
        else:
            raise ConfigurationError(f"Dependency cycle among steps: {', '.join(s.key for s in pending)}")
        pending.remove(step)
        order.append(step)
        done.add(step.key)
    return order


def execute_step(step: Step, state: EcosystemState, ctx: RunContext):
    """Run one step unless the state already records it."""
    if step.key in state:
        logger.info(f"Skipping {step.key}: already recorded")
        return

    missing = [name for name in step.requires if not state.get(name)]
    if missing:
        raise StateError(f"Cannot start {step.key}: missing {', '.join(missing)}")

    if not step.deploys:
        step.run(state, ctx)
        state.mark_done(step.key)
        return

    artifact = ctx.resolver.resolve(step.artifact)
    if step.detect_network:
        artifact.detect_network(ctx.client.chain_id)
    for library_name, attribute in step.links:
        link(artifact, library_name, getattr(ctx.libraries, attribute))

    logger.info(f"Deploying {step.artifact}...")
    address = ctx.client.deploy(artifact, step.args(state, ctx), step.budget)
    state.set(step.key, address)
    logger.info(f"{step.artifact} deployed at {address}")


def log_report(state: EcosystemState):
    for name, address in state.report().items():
        logger.info(f"{DISPLAY_NAMES[name]}: {address}")


def provision_ecosystem(resolver, environment: str, client, tokens: TokenAddresses,
                        libraries: LibraryAddresses, store: Optional[StateStore] = None,
                        run_id: Optional[str] = None, markets: Sequence[MarketSpec] = DEFAULT_MARKETS,
                        steps: Sequence[Step] = PIPELINE) -> EcosystemState:
    """
    Deploy the full DMM ecosystem.

    Args:
        resolver: ArtifactResolver (or compatible) supplying contract artifacts
        environment: LOCAL, TESTNET or PRODUCTION
        client: ChainClient bound to the deployer account
        tokens: upstream token addresses
        libraries: upstream library addresses
        store: optional StateStore; when given, state is loaded for `run_id`
            and saved after every step so a failed run can be resumed
        run_id: key of the persisted state (required with `store`)
        markets: markets registered on LOCAL

    Returns:
        The frozen EcosystemState

    Raises:
        ProvisioningError: the first failure; `error.state` holds the partial state
    """
    env = load_environment(environment)
    order = schedule(steps, env)

    if store is not None and not run_id:
        raise ConfigurationError("A run id is required to persist deployment state")
    state = store.load(run_id) if store is not None else EcosystemState()
    try:
        state.bind(env.name, client.chain_id)
    except ConfigurationError as e:
        e.state = state
        raise

    def checkpoint():
        if store is not None:
            store.save(run_id, state)

    ctx = RunContext(env=env, tokens=tokens, libraries=libraries, resolver=resolver, client=client)
    try:
        for step in order:
            execute_step(step, state, ctx)
            checkpoint()

        if env.runs_market_provisioning:
            provision_markets(state, client, resolver, tokens, markets, checkpoint=checkpoint)
    except ProvisioningError as e:
        if e.state is None:
            e.state = state
        logger.error(f"Provisioning aborted: {e}")
        checkpoint()
        raise

    log_report(state)
    return state.freeze()
