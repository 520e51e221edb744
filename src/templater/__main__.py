"""Allow running as `python -m templater`."""

from templater.cli import main

main()
