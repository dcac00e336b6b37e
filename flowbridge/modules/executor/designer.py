"""
Designer environment interfaces.

The executor drives a live design document through the Designer protocol.
Elements expose a closed set of capabilities, resolved once from their
type, so operations dispatch on capability instead of probing for methods.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Protocol, Sequence, Union


class ElementType(str, Enum):
    """Kinds of live elements."""

    BODY = "Body"
    DOM = "DOM"
    STRING = "String"
    IMAGE = "Image"


class Capability(str, Enum):
    """What an element can do."""

    CHILDREN = "children"
    TEXT = "text"
    ATTRIBUTES = "attributes"
    STYLES = "styles"
    IMAGE = "image"


ELEMENT_CAPABILITIES: Dict[ElementType, FrozenSet[Capability]] = {
    ElementType.BODY: frozenset({Capability.CHILDREN, Capability.STYLES}),
    ElementType.DOM: frozenset(
        {Capability.CHILDREN, Capability.TEXT, Capability.ATTRIBUTES, Capability.STYLES}
    ),
    ElementType.STRING: frozenset({Capability.TEXT}),
    ElementType.IMAGE: frozenset({Capability.IMAGE, Capability.ATTRIBUTES, Capability.STYLES}),
}


class DesignerError(Exception):
    """A Designer call failed."""


class ElementBuilder:
    """
    Detached element under construction.

    Builders are plain local objects; nothing reaches the document until a
    fully built builder is appended to a live element.
    """

    def __init__(self, kind: ElementType = ElementType.DOM):
        self.kind = kind
        self.tag: Optional[str] = None
        self.attributes: Dict[str, str] = {}
        self.style_properties: Dict[str, str] = {}
        self.text: Optional[str] = None
        self.children: List["ElementBuilder"] = []

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return ELEMENT_CAPABILITIES[self.kind]

    def set_tag(self, tag: str) -> None:
        self.tag = tag

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    def set_style_properties(self, properties: Mapping[str, str]) -> None:
        """Merge a batch of inline style properties; later keys win."""
        self.style_properties.update(properties)

    def set_text_content(self, text: str) -> None:
        self.text = text

    def append(self, child: "ElementBuilder") -> "ElementBuilder":
        if Capability.CHILDREN not in self.capabilities:
            raise DesignerError(f"{self.kind.value} element cannot contain children")
        self.children.append(child)
        return child


class Asset(Protocol):
    id: str


class Style(Protocol):
    name: str

    async def set_properties(self, properties: Mapping[str, str]) -> None: ...

    async def set_parent(self, parent: "Style") -> None: ...


class Page(Protocol):
    id: str

    async def set_name(self, name: str) -> None: ...

    async def set_slug(self, slug: str) -> None: ...


class Element(Protocol):
    """A live element in the current document."""

    id: str
    kind: ElementType
    capabilities: FrozenSet[Capability]

    def can(self, capability: Capability) -> bool: ...

    async def get_tag(self) -> Optional[str]: ...

    async def get_attribute(self, name: str) -> Optional[str]: ...

    async def get_children(self) -> List["Element"]: ...

    async def get_text(self) -> Optional[str]: ...

    async def set_text(self, text: str) -> None: ...

    async def append(self, child: Union[ElementBuilder, ElementType]) -> "Element": ...

    async def set_styles(self, styles: Sequence[Style]) -> None: ...

    async def set_asset(self, asset: Asset) -> None: ...

    async def set_alt_text(self, alt: str) -> None: ...


class Designer(Protocol):
    """Protocol for the live design environment the executor drives."""

    async def create_page(self) -> Page: ...

    async def switch_page(self, page: Page) -> None: ...

    async def get_selected_element(self) -> Optional[Element]: ...

    async def get_root_element(self) -> Optional[Element]: ...

    async def get_all_elements(self) -> List[Element]:
        """All elements of the current page in document (pre-order) order."""
        ...

    async def create_style(self, name: str) -> Style:
        """Create the named style, or return it if it already exists."""
        ...

    async def get_asset_by_id(self, asset_id: str) -> Any: ...
