"""Tests for the DMM ecosystem deployer."""
