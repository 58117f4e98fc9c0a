"""HTTP resolver mode for did-btc.

Provides a lightweight stdlib-based HTTP API that resolves DIDs from their
transactions and decodes identifiers, without a web framework dependency.
"""
from __future__ import annotations

from did_btc.server.app import DidBtcHandler, create_server, run_server

__all__ = ["DidBtcHandler", "create_server", "run_server"]
