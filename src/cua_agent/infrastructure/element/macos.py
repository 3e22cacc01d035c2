"""
macOS accessibility backend (AXUIElement via pyobjc).

Requires the host process to be trusted for accessibility in
System Settings > Privacy & Security > Accessibility.
"""

import itertools
import logging
from typing import Any, List, Optional

from cua_agent.domain.errors import AccessPermissionError, ElementError

from .element import Element, Rect, Role
from .finder import ElementFinder

logger = logging.getLogger(__name__)

AX_ROLES = {
    "AXWindow": Role.WINDOW,
    "AXButton": Role.BUTTON,
    "AXTextField": Role.TEXTFIELD,
    "AXTextArea": Role.TEXTAREA,
    "AXStaticText": Role.STATICTEXT,
    "AXCheckBox": Role.CHECKBOX,
    "AXRadioButton": Role.RADIOBUTTON,
    "AXList": Role.LIST,
    "AXRow": Role.LISTITEM,
    "AXOutlineRow": Role.LISTITEM,
    "AXMenu": Role.MENU,
    "AXMenuItem": Role.MENUITEM,
    "AXMenuBar": Role.MENUBAR,
    "AXToolbar": Role.TOOLBAR,
    "AXScrollArea": Role.SCROLLAREA,
    "AXScrollBar": Role.SCROLLBAR,
    "AXImage": Role.IMAGE,
    "AXLink": Role.LINK,
    "AXGroup": Role.GROUP,
    "AXTabGroup": Role.TABGROUP,
    "AXTable": Role.TABLE,
    "AXColumn": Role.COLUMN,
    "AXCell": Role.CELL,
    "AXSlider": Role.SLIDER,
    "AXComboBox": Role.COMBOBOX,
    "AXPopUpButton": Role.POPUPBUTTON,
    "AXProgressIndicator": Role.PROGRESSBAR,
    "AXSplitter": Role.SPLITTER,
    "AXSheet": Role.SHEET,
    "AXDrawer": Role.DRAWER,
    "AXDialog": Role.DIALOG,
    "AXApplication": Role.APPLICATION,
}


class MacOSElementFinder(ElementFinder):
    """Accessibility backend built on the ApplicationServices AX API."""

    def __init__(self) -> None:
        import ApplicationServices as ax

        self._ax = ax
        if not ax.AXIsProcessTrusted():
            raise AccessPermissionError("accessibility")
        self._system = ax.AXUIElementCreateSystemWide()
        self._ids = itertools.count(1)

    def _attribute(self, ref: Any, name: str) -> Optional[Any]:
        err, value = self._ax.AXUIElementCopyAttributeValue(ref, name, None)
        if err != self._ax.kAXErrorSuccess:
            return None
        return value

    def _string(self, ref: Any, name: str) -> str:
        value = self._attribute(ref, name)
        return str(value) if value is not None else ""

    def _bool(self, ref: Any, name: str) -> bool:
        return bool(self._attribute(ref, name))

    def _bounds(self, ref: Any) -> Rect:
        position = self._attribute(ref, "AXPosition")
        size = self._attribute(ref, "AXSize")
        if position is None or size is None:
            return Rect()
        ok_p, point = self._ax.AXValueGetValue(position, self._ax.kAXValueCGPointType, None)
        ok_s, extent = self._ax.AXValueGetValue(size, self._ax.kAXValueCGSizeType, None)
        if not (ok_p and ok_s):
            return Rect()
        return Rect(int(point.x), int(point.y), int(extent.width), int(extent.height))

    def _wrap(self, ref: Any) -> Element:
        title = self._string(ref, "AXTitle")
        description = self._string(ref, "AXDescription")
        return Element(
            id=f"ax-{next(self._ids)}",
            role=AX_ROLES.get(self._string(ref, "AXRole"), Role.UNKNOWN),
            name=title or description,
            title=title,
            value=self._string(ref, "AXValue"),
            description=description,
            bounds=self._bounds(ref),
            enabled=self._bool(ref, "AXEnabled"),
            focused=self._bool(ref, "AXFocused"),
            selected=self._bool(ref, "AXSelected"),
            handle=ref,
        )

    def focused_application(self) -> Element:
        ref = self._attribute(self._system, "AXFocusedApplication")
        if ref is None:
            raise ElementError("focused application")
        return self._wrap(ref)

    def focused_element(self) -> Element:
        ref = self._attribute(self._system, "AXFocusedUIElement")
        if ref is None:
            raise ElementError("focused element")
        return self._wrap(ref)

    def children(self, element: Element) -> List[Element]:
        refs = self._attribute(element.handle, "AXChildren") or []
        return [self._wrap(ref) for ref in refs]
