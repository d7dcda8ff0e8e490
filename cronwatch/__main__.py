"""Enable running as: python -m cronwatch

Usage:
    python -m cronwatch --help
    python -m cronwatch jobs list
    python -m cronwatch serve
"""

from cronwatch.cli.main import cli

if __name__ == "__main__":
    cli()
