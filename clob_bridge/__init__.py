"""
CLOB Bridge - A line-oriented JSON bridge to the Polymarket CLOB.

A parent process writes one JSON command per line to standard input and reads
exactly one JSON response per line from standard output. Logs go to stderr.
"""

__version__ = "0.3.0"

from clob_bridge.client.bridge_client import BridgeClient

__all__ = ["BridgeClient", "__version__"]
