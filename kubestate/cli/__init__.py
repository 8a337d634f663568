"""kubestate command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kubestate`` script).
"""

from kubestate.cli.main import cli

__all__ = ["cli"]
