import logging
from typing import List, Optional

from flowbridge.modules.api.models import OID_ATTRIBUTE

from .designer import Capability, Designer, Element, ElementType

logger = logging.getLogger(__name__)

SELECTOR_SEPARATOR = ">"


def parse_selector(selector: str) -> List[str]:
    """Split a child path such as 'div > span' into stripped segments."""
    return [segment.strip() for segment in selector.split(SELECTOR_SEPARATOR)]


class OidResolver:
    def __init__(self, designer: Designer, attribute: str = OID_ATTRIBUTE):
        """
        Initialize resolver.

        Args:
            designer: Live design environment
            attribute: Reserved attribute holding element identifiers
        """
        self.designer = designer
        self.attribute = attribute

    async def find_all(self, oid: str) -> List[Element]:
        """
        Collect every element tagged with oid, in document traversal order.

        Identifiers are not unique by construction, so callers that need a
        single element take the first match.
        """
        matches = []
        for element in await self.designer.get_all_elements():
            if not element.can(Capability.ATTRIBUTES):
                continue
            if await element.get_attribute(self.attribute) == oid:
                matches.append(element)
        return matches

    async def resolve(self, oid: str, selector: Optional[str] = None) -> Optional[Element]:
        """
        Resolve one element by oid, optionally narrowed by a child path.

        Args:
            oid: Tag identifier
            selector: Child path ('div > span'); empty segments match any child

        Returns:
            First matching element, or None

        Logic:
        1. Collect tagged elements in traversal order
        2. Without a selector, the first match wins
        3. Otherwise narrow layer by layer through immediate children
        4. An empty layer ends the search with None
        """
        matches = await self.find_all(oid)
        if len(matches) > 1:
            logger.debug(f"{len(matches)} elements share OID {oid}, using the first")

        if not selector or not selector.strip():
            return matches[0] if matches else None

        candidates = matches
        for segment in parse_selector(selector):
            candidates = await self._narrow(candidates, segment)
            if not candidates:
                return None

        return candidates[0] if candidates else None

    async def _narrow(self, candidates: List[Element], segment: str) -> List[Element]:
        """Replace candidates by their immediate DOM children matching segment."""
        wanted = segment.lower()
        narrowed = []
        for candidate in candidates:
            if not candidate.can(Capability.CHILDREN):
                continue
            for child in await candidate.get_children():
                if child.kind is not ElementType.DOM:
                    continue
                if not wanted:
                    narrowed.append(child)
                    continue
                tag = await child.get_tag()
                if tag and tag.lower() == wanted:
                    narrowed.append(child)
        return narrowed
