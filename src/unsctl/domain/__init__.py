"""Domain layer — pure naming, role, and relay rules with no I/O.

Nothing here touches the ledger model, the deployer, or the filesystem.
"""
