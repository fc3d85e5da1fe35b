"""eBUS error taxonomy, CRC-8, deterministic helpers and target-device emulation."""

__version__ = "0.1.0"