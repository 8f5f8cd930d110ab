"""
Deployment Scripts
==================

Command-line entry points for deploying the DMM ecosystem.

Structure:
- deploy_ecosystem: runs ecosystem.cli, which deploys the protocol contracts and, on LOCAL, registers the default markets
"""

__version__ = "1.0.0"
