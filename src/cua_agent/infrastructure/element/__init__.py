"""Accessibility element queries."""

from .element import Element, Rect, Role, Selector
from .finder import ElementFinder, UnsupportedElementFinder, create_element_finder

__all__ = [
    "Element",
    "ElementFinder",
    "Rect",
    "Role",
    "Selector",
    "UnsupportedElementFinder",
    "create_element_finder",
]
