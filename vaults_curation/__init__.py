"""Vault curation toolkit: timelocks, adapters, caps and snapshots."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the vaults-curation script."""
    import sys

    from vaults_curation.cli import main

    raise SystemExit(main(sys.argv[1:]))
