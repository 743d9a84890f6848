"""
Core package for pagesync.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from pagesync.core.actions import Actions
  from pagesync.core.synchronizer import Synchronizer
  from pagesync.core.script_loader import load_script
"""

__all__: list[str] = []
