"""
Element finder: tree walking and selector matching over a platform backend.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

from cua_agent.domain.errors import ElementError, NotSupportedError, TaskTimeoutError
from cua_agent.infrastructure.platform import OSType, detect_os

from .element import Element, Selector

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 25
POLL_INTERVAL = 0.1


class ElementFinder(ABC):
    """
    Base class for accessibility backends.

    Backends supply the focused application and the children of an element;
    searching is shared.
    """

    @abstractmethod
    def focused_application(self) -> Element:
        """The frontmost application element."""

    @abstractmethod
    def children(self, element: Element) -> List[Element]:
        """Immediate children of an element."""

    def close(self) -> None:
        """Release backend resources."""

    def walk(self, root: Optional[Element] = None, max_depth: int = DEFAULT_MAX_DEPTH) -> Iterator[Element]:
        """Depth-first traversal starting at ``root`` (default: focused application)."""
        if root is None:
            root = self.focused_application()
        stack = [(root, 0)]
        while stack:
            element, depth = stack.pop()
            yield element
            if depth >= max_depth:
                continue
            kids = element.children if element.children is not None else self.children(element)
            for child in reversed(kids):
                stack.append((child, depth + 1))

    def find_all(
        self,
        selector: Selector,
        root: Optional[Element] = None,
        max_results: Optional[int] = None,
    ) -> List[Element]:
        """All matching elements, in tree order."""
        results: List[Element] = []
        for element in self.walk(root):
            if selector.matches(element):
                results.append(element)
                if max_results is not None and len(results) >= max_results:
                    break
        return results

    def find(self, selector: Selector, root: Optional[Element] = None) -> Element:
        """
        First matching element.

        Raises:
            ElementError: If nothing matches
        """
        found = self.find_all(selector, root=root, max_results=1)
        if not found:
            raise ElementError(str(selector))
        return found[0]

    async def wait_for(self, selector: Selector, timeout: float, root: Optional[Element] = None) -> Element:
        """
        Poll until a matching element appears.

        Raises:
            TaskTimeoutError: If nothing matches within ``timeout`` seconds
        """
        deadline = time.monotonic() + timeout
        while True:
            try:
                return self.find(selector, root=root)
            except ElementError:
                pass
            if time.monotonic() >= deadline:
                raise TaskTimeoutError(f"element: timeout waiting for element ({selector})")
            await asyncio.sleep(POLL_INTERVAL)


class UnsupportedElementFinder(ElementFinder):
    """Finder for platforms without an accessibility backend."""

    def __init__(self, platform_name: str = "") -> None:
        self._platform = platform_name or detect_os().value

    def focused_application(self) -> Element:
        raise NotSupportedError(f"element: accessibility queries not supported on {self._platform}")

    def children(self, element: Element) -> List[Element]:
        raise NotSupportedError(f"element: accessibility queries not supported on {self._platform}")


def create_element_finder(os_type: Optional[OSType] = None) -> ElementFinder:
    """Select the accessibility backend for the current platform."""
    os_type = os_type or detect_os()
    if os_type == OSType.DARWIN:
        from .macos import MacOSElementFinder

        return MacOSElementFinder()
    logger.info(f"No accessibility backend for {os_type.value}; find_element will report not supported")
    return UnsupportedElementFinder(os_type.value)
