"""keybridge -- pluggable keystore backend for certificate lifecycle managers."""

__version__ = "1.0.0"
