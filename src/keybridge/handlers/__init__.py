"""Keystore command handlers and the dispatcher that routes to them."""
