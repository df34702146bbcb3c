"""Allow ``python -m tokenkeeper`` to run the operator CLI."""

from tokenkeeper.cli import run

run()
