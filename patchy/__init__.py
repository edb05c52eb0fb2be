"""
patchy package

Provides the CLI entrypoint (`python -m patchy`) and the engine that rebuilds a
personal fork from an upstream branch plus pull requests, branches and patches.
"""

from .cli import main

__all__ = ["main"]
