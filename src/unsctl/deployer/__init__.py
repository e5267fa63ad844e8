"""Deployment orchestration — tasks, the per-network store, and sessions.

Dependency direction: deployer -> ledger/domain. The deployer never
imports from services, commands, or output.
"""
