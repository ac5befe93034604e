"""Allow ``python -m keybridge``."""

from keybridge.cli.main import main

main()
