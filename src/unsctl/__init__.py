"""unsctl — deployment orchestration for the UNS registry and its minting manager."""

__version__ = "0.1.0"
