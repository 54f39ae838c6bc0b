"""Allow `python -m skill_runtime`."""

from .cli import main

main()
