"""
Utilities for the Website Scanner

Component wiring for the command line entry point.
"""

from sitescan.utils.component_factory import Components, create_components, create_storage

__all__ = ['Components', 'create_components', 'create_storage']
