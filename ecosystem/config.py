"""Runtime settings loaded from the environment / .env file."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()


@dataclass
class Settings:
    rpc_url: str
    private_key: Optional[str]
    environment: str
    artifacts_dir: str
    upstream_path: str
    state_dir: str
    run_id: Optional[str]
    receipt_timeout: int
    slack_webhook: Optional[str]

    @classmethod
    def from_env(cls) -> 'Settings':
        try:
            receipt_timeout = int(os.getenv("RECEIPT_TIMEOUT", "300"))
        except ValueError:
            raise ConfigurationError(f"RECEIPT_TIMEOUT must be an integer, found {os.getenv('RECEIPT_TIMEOUT')!r}")

        return cls(
            rpc_url=os.getenv("RPC_URL", "http://localhost:8545"),
            private_key=os.getenv("PRIVATE_KEY"),
            environment=os.getenv("DEPLOY_ENVIRONMENT", "LOCAL"),
            artifacts_dir=os.getenv("ARTIFACTS_DIR", "build/contracts"),
            upstream_path=os.getenv("UPSTREAM_ADDRESSES", "deployment/upstream.json"),
            state_dir=os.getenv("STATE_DIR", os.path.expanduser("~/.dmm/deployments")),
            run_id=os.getenv("RUN_ID") or None,
            receipt_timeout=receipt_timeout,
            slack_webhook=os.getenv("SLACK_WEBHOOK") or None,
        )

    def require_private_key(self) -> str:
        if not self.private_key:
            raise ConfigurationError("PRIVATE_KEY not found in .env file")
        return self.private_key

    def resolve_run_id(self, chain_id: int) -> str:
        return self.run_id or f"{self.environment.lower()}-{chain_id}"
