"""
Command-line entry point for deploying the DMM ecosystem.
Deploys the protocol contracts on top of the upstream tokens and libraries,
persisting progress so a failed run can be resumed with the same run id.
"""

import logging
import argparse
from typing import Dict, Optional

import requests

from .artifacts import ArtifactResolver
from .chain import connect
from .config import Settings
from .errors import ProvisioningError
from .orchestrator import provision_ecosystem
from .state import DISPLAY_NAMES, StateStore
from .upstream import load_upstream

logger = logging.getLogger(__name__)


def configure_logging(log_file: str = 'deploy_ecosystem.log'):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def send_slack_alert(webhook: Optional[str], message: str, report: Optional[Dict[str, Optional[str]]] = None):
    """Post a deployment notification to Slack, if a webhook is configured."""
    if not webhook:
        return
    payload = {
        "text": f"DMM deployment: {message}",
        "attachments": [
            {
                "fields": [
                    {"title": DISPLAY_NAMES[name], "value": address or "-", "short": True}
                    for name, address in (report or {}).items()
                ]
            }
        ]
    }
    try:
        response = requests.post(webhook, json=payload, timeout=10)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to send Slack alert: {e}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Deploy the DMM ecosystem contracts")
    parser.add_argument('--environment', help="LOCAL, TESTNET or PRODUCTION (default: $DEPLOY_ENVIRONMENT)")
    parser.add_argument('--run-id', help="key of the persisted deployment state (default: $RUN_ID or <env>-<chain id>)")
    parser.add_argument('--artifacts', help="truffle build directory (default: $ARTIFACTS_DIR)")
    parser.add_argument('--upstream', help="JSON file with upstream token/library addresses")
    parser.add_argument('--state-dir', help="directory for persisted deployment state")
    parser.add_argument('--fresh', action='store_true', help="discard persisted state for this run id first")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    configure_logging()
    args = parse_args(argv)

    settings = Settings.from_env()
    environment = args.environment or settings.environment
    artifacts_dir = args.artifacts or settings.artifacts_dir
    upstream_path = args.upstream or settings.upstream_path
    store = StateStore(args.state_dir or settings.state_dir)

    try:
        tokens, libraries = load_upstream(upstream_path)
        client = connect(settings.rpc_url, settings.require_private_key(), settings.receipt_timeout)
        run_id = args.run_id or settings.resolve_run_id(client.chain_id)
        if args.fresh:
            logger.warning(f"Discarding persisted state for run {run_id}")
            store.clear(run_id)

        logger.info(f"Starting deployment run {run_id} ({environment})")
        state = provision_ecosystem(
            ArtifactResolver(artifacts_dir),
            environment,
            client,
            tokens,
            libraries,
            store=store,
            run_id=run_id,
        )
    except ProvisioningError as e:
        logger.error(f"Deployment failed: {e}")
        report = e.state.report() if e.state is not None else None
        if report:
            for name, address in report.items():
                logger.error(f"{DISPLAY_NAMES[name]}: {address}")
        send_slack_alert(settings.slack_webhook, f"failed ({e})", report)
        return 1

    send_slack_alert(settings.slack_webhook, f"{environment} deployment completed", state.report())
    logger.info(f"Deployment state saved to {store.path(run_id)}")
    return 0
