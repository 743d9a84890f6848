"""
Driver package
--------------
Adapters that resolve locators against a live page and perform the element
mutations the action facade asks for.
"""

from .playwright_node import PlaywrightNode, build_locator

__all__ = [
    "PlaywrightNode",
    "build_locator",
]
