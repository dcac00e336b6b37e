from flowbridge.modules.api.models import OID_ATTRIBUTE, BuildNode

from .designer import ElementBuilder, ElementType


class TreeBuilder:
    """Compiles a declarative BuildNode tree into detached element builders."""

    def __init__(self, attribute: str = OID_ATTRIBUTE):
        self.attribute = attribute

    def build(self, node: BuildNode) -> ElementBuilder:
        """
        Build node and its whole subtree.

        Args:
            node: Tree specification (never mutated)

        Returns:
            Fully built, not yet attached element
        """
        return self._build_into(node, ElementBuilder(ElementType.DOM))

    def _build_into(self, node: BuildNode, element: ElementBuilder) -> ElementBuilder:
        element.set_tag(node.tag)

        if node.oid:
            element.set_attribute(self.attribute, node.oid)
        for name, value in (node.attrs or {}).items():
            element.set_attribute(name, value)

        # One batch so later keys override earlier ones
        if node.styles:
            element.set_style_properties(node.styles)

        if node.text:
            element.set_text_content(node.text)

        for child in node.children or []:
            element.append(self._build_into(child, ElementBuilder(ElementType.DOM)))

        return element
