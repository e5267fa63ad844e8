"""Infrastructure — program backends for the in-process ledger and JSON-RPC nodes."""
