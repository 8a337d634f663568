"""Entry point for `python -m kubestate`, with the same commands as the script.

Usage:
    python -m kubestate serve --namespaces default
    python -m kubestate collectors
"""

from kubestate.cli import cli

cli(prog_name="kubestate")
