"""
Operations package - Application service layer between CLI and assembler.

This package provides the Operations facade that runs a build, centralizes
error mapping, and handles output formatting while keeping the CLI command
thin and testable.
"""
from .facade import BuildResult, Operations, OpsConfig
from .mappers import exit_code_for, run_and_exit

__all__ = ["BuildResult", "Operations", "OpsConfig", "exit_code_for", "run_and_exit"]
