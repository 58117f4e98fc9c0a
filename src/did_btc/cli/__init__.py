"""Command line interface for did-btc."""
