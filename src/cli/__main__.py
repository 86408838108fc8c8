"""Allow ``python -m src.cli`` execution (runs the prefetch CLI)."""

from src.cli.prefetch import main

main()
