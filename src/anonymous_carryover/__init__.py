# ABOUTME: Main package initialization for the anonymous action carryover subsystem.
# ABOUTME: Exports version information from pyproject.toml.

from importlib.metadata import version

__version__ = version("anonymous-carryover")
