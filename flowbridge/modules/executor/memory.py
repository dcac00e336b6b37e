"""In-memory design document implementing the Designer protocol."""

import itertools
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union

from .designer import (
    ELEMENT_CAPABILITIES,
    Capability,
    DesignerError,
    ElementBuilder,
    ElementType,
)

_element_ids = itertools.count(1)
_page_ids = itertools.count(1)


class MemoryAsset:
    def __init__(self, asset_id: str, name: str, url: Optional[str] = None):
        self.id = asset_id
        self.name = name
        self.url = url


class MemoryStyle:
    def __init__(self, name: str):
        self.name = name
        self.properties: Dict[str, str] = {}
        self.parent: Optional["MemoryStyle"] = None

    async def set_properties(self, properties: Mapping[str, str]) -> None:
        self.properties = dict(properties)

    async def set_parent(self, parent: "MemoryStyle") -> None:
        self.parent = parent


class MemoryElement:
    def __init__(
        self,
        kind: ElementType,
        tag: Optional[str] = None,
        attributes: Optional[Dict[str, str]] = None,
        style_properties: Optional[Dict[str, str]] = None,
        text: Optional[str] = None,
    ):
        self.id = f"el-{next(_element_ids)}"
        self.kind = kind
        self.capabilities = ELEMENT_CAPABILITIES[kind]
        self.tag = tag
        self.attributes = dict(attributes or {})
        self.style_properties = dict(style_properties or {})
        self.text = text
        self.children: List["MemoryElement"] = []
        self.parent: Optional["MemoryElement"] = None
        self.styles: List[MemoryStyle] = []
        self.asset: Optional[MemoryAsset] = None
        self.alt_text: Optional[str] = None

    @classmethod
    def materialize(cls, source: Union[ElementBuilder, ElementType]) -> "MemoryElement":
        """Turn a builder (with its whole subtree) or a preset into live elements."""
        if isinstance(source, ElementType):
            return cls(source, tag="img" if source is ElementType.IMAGE else None)

        element = cls(
            source.kind,
            tag=source.tag,
            attributes=source.attributes,
            style_properties=source.style_properties,
            text=source.text,
        )
        for child in source.children:
            element._attach(cls.materialize(child))
        return element

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def _require(self, capability: Capability) -> None:
        if not self.can(capability):
            raise DesignerError(f"{self.kind.value} element does not support {capability.value}")

    def _attach(self, child: "MemoryElement") -> None:
        child.parent = self
        self.children.append(child)

    def walk(self) -> Iterator["MemoryElement"]:
        """Depth-first pre-order traversal."""
        yield self
        for child in self.children:
            yield from child.walk()

    async def get_tag(self) -> Optional[str]:
        return self.tag

    async def get_attribute(self, name: str) -> Optional[str]:
        self._require(Capability.ATTRIBUTES)
        return self.attributes.get(name)

    async def get_children(self) -> List["MemoryElement"]:
        self._require(Capability.CHILDREN)
        return list(self.children)

    async def get_text(self) -> Optional[str]:
        self._require(Capability.TEXT)
        return self.text

    async def set_text(self, text: str) -> None:
        self._require(Capability.TEXT)
        self.text = text

    async def append(self, child: Union[ElementBuilder, ElementType]) -> "MemoryElement":
        self._require(Capability.CHILDREN)
        element = self.materialize(child)
        self._attach(element)
        return element

    async def set_styles(self, styles: Sequence[MemoryStyle]) -> None:
        self._require(Capability.STYLES)
        self.styles = list(styles)

    async def set_asset(self, asset: MemoryAsset) -> None:
        self._require(Capability.IMAGE)
        self.asset = asset

    async def set_alt_text(self, alt: str) -> None:
        self._require(Capability.IMAGE)
        self.alt_text = alt

    def __repr__(self) -> str:
        return f"MemoryElement({self.id}, {self.kind.value}, tag={self.tag!r})"


class MemoryPage:
    def __init__(self, name: str = "Untitled", slug: Optional[str] = None):
        self.id = f"page-{next(_page_ids)}"
        self.name = name
        self.slug = slug
        self.root = MemoryElement(ElementType.BODY, tag="body")

    async def set_name(self, name: str) -> None:
        self.name = name

    async def set_slug(self, slug: str) -> None:
        self.slug = slug


class InMemoryDesigner:
    """
    Designer backed by plain Python objects.

    Starts with a single "Home" page. Used by the executor when no real
    Designer session is attached, and by the tests.
    """

    def __init__(self):
        home = MemoryPage("Home", slug="")
        self.pages: List[MemoryPage] = [home]
        self.current_page = home
        self.selected: Optional[MemoryElement] = None
        self.styles: Dict[str, MemoryStyle] = {}
        self.assets: Dict[str, MemoryAsset] = {}

    def select(self, element: Optional[MemoryElement]) -> None:
        self.selected = element

    def add_asset(self, asset_id: str, name: str, url: Optional[str] = None) -> MemoryAsset:
        asset = MemoryAsset(asset_id, name, url)
        self.assets[asset_id] = asset
        return asset

    async def create_page(self) -> MemoryPage:
        page = MemoryPage()
        self.pages.append(page)
        return page

    async def switch_page(self, page: MemoryPage) -> None:
        if page not in self.pages:
            raise DesignerError(f"Unknown page {page.id}")
        self.current_page = page
        self.selected = None

    async def get_selected_element(self) -> Optional[MemoryElement]:
        return self.selected

    async def get_root_element(self) -> Optional[MemoryElement]:
        return self.current_page.root

    async def get_all_elements(self) -> List[MemoryElement]:
        return list(self.current_page.root.walk())

    async def create_style(self, name: str) -> MemoryStyle:
        style = self.styles.get(name)
        if style is None:
            style = self.styles[name] = MemoryStyle(name)
        return style

    async def get_asset_by_id(self, asset_id: str) -> MemoryAsset:
        try:
            return self.assets[asset_id]
        except KeyError:
            raise DesignerError(f"Asset {asset_id} not found") from None
