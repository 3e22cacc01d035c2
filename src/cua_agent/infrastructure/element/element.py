"""
UI element model for accessibility queries.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Role(str, Enum):
    """Semantic type of a UI element, mapped from each platform's roles."""

    WINDOW = "window"
    BUTTON = "button"
    TEXTFIELD = "textfield"
    TEXTAREA = "textarea"
    STATICTEXT = "statictext"
    CHECKBOX = "checkbox"
    RADIOBUTTON = "radiobutton"
    LIST = "list"
    LISTITEM = "listitem"
    MENU = "menu"
    MENUITEM = "menuitem"
    MENUBAR = "menubar"
    TOOLBAR = "toolbar"
    SCROLLAREA = "scrollarea"
    SCROLLBAR = "scrollbar"
    IMAGE = "image"
    LINK = "link"
    GROUP = "group"
    TAB = "tab"
    TABGROUP = "tabgroup"
    TABLE = "table"
    ROW = "row"
    CELL = "cell"
    COLUMN = "column"
    SLIDER = "slider"
    COMBOBOX = "combobox"
    POPUPBUTTON = "popupbutton"
    PROGRESSBAR = "progressbar"
    SPLITTER = "splitter"
    SHEET = "sheet"
    DRAWER = "drawer"
    DIALOG = "dialog"
    APPLICATION = "application"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> "Role":
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Rect:
    """Screen rectangle in logical coordinates."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2

    def contains(self, px: int, py: int) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass
class Element:
    """
    A UI element from the accessibility tree.

    ``id`` is only unique within one query; it is not stable across calls.
    ``handle`` is the platform reference and never leaves the process.
    """

    id: str
    role: Role = Role.UNKNOWN
    name: str = ""
    title: str = ""
    value: str = ""
    description: str = ""
    bounds: Rect = field(default_factory=Rect)
    enabled: bool = True
    focused: bool = False
    selected: bool = False
    children: Optional[List["Element"]] = None
    handle: Any = field(default=None, repr=False, compare=False)

    def center(self) -> Tuple[int, int]:
        return self.bounds.center()

    def label(self) -> str:
        return self.name or self.title or "(no name)"

    def __str__(self) -> str:
        b = self.bounds
        return f"{self.role.value}[{self.label()}] at ({b.x},{b.y}) {b.width}x{b.height}"

    def to_dict(self) -> Dict[str, Any]:
        cx, cy = self.center()
        return {
            "id": self.id,
            "role": self.role.value,
            "name": self.name,
            "title": self.title,
            "value": self.value,
            "bounds": {
                "x": self.bounds.x,
                "y": self.bounds.y,
                "width": self.bounds.width,
                "height": self.bounds.height,
            },
            "center_x": cx,
            "center_y": cy,
            "enabled": self.enabled,
            "focused": self.focused,
        }


@dataclass
class Selector:
    """
    Element query. All given criteria must match.

    ``name`` and ``title`` are exact; the ``*_contains`` forms are
    case-insensitive substring matches.
    """

    role: Optional[Role] = None
    name: Optional[str] = None
    name_contains: Optional[str] = None
    title: Optional[str] = None
    title_contains: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            v for v in (self.role, self.name, self.name_contains, self.title, self.title_contains)
        )

    def matches(self, element: Element) -> bool:
        if self.role is not None and element.role != self.role:
            return False
        if self.name and element.name != self.name:
            return False
        if self.name_contains and self.name_contains.lower() not in element.name.lower():
            return False
        if self.title and element.title != self.title:
            return False
        if self.title_contains and self.title_contains.lower() not in element.title.lower():
            return False
        return True

    def __str__(self) -> str:
        parts = []
        for key in ("role", "name", "name_contains", "title", "title_contains"):
            value = getattr(self, key)
            if value:
                parts.append(f"{key}={value.value if isinstance(value, Role) else value}")
        return ", ".join(parts) or "(any)"
