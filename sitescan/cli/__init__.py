"""
Command Line Interface for the Website Scanner

This package provides command line argument parsing and validation
for the scanner. It handles URL input options and configuration overrides.

Classes:
    CLIManager: Command line interface manager for the scanner
"""

from sitescan.cli.arguments import CLIManager

__all__ = ['CLIManager']
