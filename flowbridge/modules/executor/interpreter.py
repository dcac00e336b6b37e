import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from flowbridge.modules.api.models import (
    AddImage,
    ApplyStyle,
    BuildTree,
    CreatePage,
    OperationResult,
    OperationType,
    SetText,
    TestConnection,
    parse_operation,
)

from .builder import TreeBuilder
from .designer import Capability, Designer, Element, ElementType
from .resolver import OidResolver

logger = logging.getLogger(__name__)


class OperationError(Exception):
    """Operation-scoped failure, recorded in that operation's result."""


class UnknownOperation(OperationError):
    pass


class NoValidParent(OperationError):
    pass


class TargetNotFound(OperationError):
    pass


class NoTextTarget(OperationError):
    pass


class ParentNotFound(OperationError):
    pass


def operation_name(raw: Any) -> str:
    """Best-effort op name for results, even for malformed operations."""
    if isinstance(raw, dict):
        return str(raw.get("op") or "UNKNOWN")
    return str(getattr(raw, "op", "UNKNOWN"))


def _format_validation_error(name: str, error: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'op'}: {err['msg']}"
        for err in error.errors()
    )
    return f"Invalid {name} operation: {details}"


class OperationInterpreter:
    """
    Executes a task's operations against the live Designer, one at a time.

    A failing operation is recorded and never stops the batch.
    """

    def __init__(
        self,
        designer: Designer,
        resolver: Optional[OidResolver] = None,
        builder: Optional[TreeBuilder] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.designer = designer
        self.resolver = resolver or OidResolver(designer)
        self.builder = builder or TreeBuilder()
        self._clock = clock
        self._handlers: Dict[type, Callable[[Any], Awaitable[Any]]] = {
            TestConnection: self._test_connection,
            CreatePage: self._create_page,
            BuildTree: self._build_tree,
            SetText: self._set_text,
            ApplyStyle: self._apply_style,
            AddImage: self._add_image,
        }

    async def execute(self, ops: Iterable[Any]) -> List[OperationResult]:
        """
        Run operations in order.

        Args:
            ops: Operation models or their raw wire dicts

        Returns:
            One OperationResult per input operation, in input order
        """
        results = []
        for raw in ops:
            name = operation_name(raw)
            try:
                result = await self.execute_operation(self._coerce(raw))
            except Exception as e:
                logger.warning(f"{name} failed: {e}")
                results.append(OperationResult(op=name, success=False, error=str(e)))
            else:
                logger.info(f"{name} completed successfully")
                results.append(OperationResult(op=name, success=True, result=result))
        return results

    async def execute_operation(self, operation: Any) -> Any:
        handler = self._handlers.get(type(operation))
        if handler is None:
            raise UnknownOperation(f"Unknown operation: {operation_name(operation)}")
        return await handler(operation)

    def _coerce(self, raw: Any) -> Any:
        if not isinstance(raw, dict):
            return raw
        name = operation_name(raw)
        if name not in OperationType.__members__:
            raise UnknownOperation(f"Unknown operation: {name}")
        try:
            return parse_operation(raw)
        except ValidationError as e:
            raise OperationError(_format_validation_error(name, e)) from None

    # Operations

    async def _test_connection(self, op: TestConnection) -> Dict[str, Any]:
        return {"status": "connected", "timestamp": int(self._clock() * 1000)}

    async def _create_page(self, op: CreatePage) -> Dict[str, Any]:
        page = await self.designer.create_page()
        await page.set_name(op.name)
        if op.slug:
            await page.set_slug(op.slug)
        await self.designer.switch_page(page)
        return {"pageId": page.id, "name": op.name, "slug": op.slug}

    async def _build_tree(self, op: BuildTree) -> Dict[str, Any]:
        parent = await self._resolve_parent(op.parent)
        built = self.builder.build(op.tree)
        element = await parent.append(built)
        return {"parentType": op.parent, "elementId": element.id}

    async def _set_text(self, op: SetText) -> Dict[str, Any]:
        target = await self.resolver.resolve(op.oid, op.selector)
        if target is None:
            raise TargetNotFound(f"Element with OID {op.oid} not found")

        if target.can(Capability.TEXT) and await target.get_text():
            await target.set_text(op.text)
        else:
            text_child = await self._find_text_child(target)
            if text_child is None:
                raise NoTextTarget(f"Could not set text content on element with OID {op.oid}")
            await text_child.set_text(op.text)

        return {"oid": op.oid, "text": op.text}

    async def _apply_style(self, op: ApplyStyle) -> Dict[str, Any]:
        spec = op.style
        parent_style = None
        if spec.parent_style_name:
            parent_style = await self.designer.create_style(spec.parent_style_name)

        style = await self.designer.create_style(spec.name)
        await style.set_properties(spec.properties)
        if parent_style is not None:
            await style.set_parent(parent_style)

        applied = 0
        skipped = []
        for ref in op.oids:
            element = await self.resolver.resolve(ref.oid, ref.selector)
            if element is None or not element.can(Capability.STYLES):
                logger.debug(f"Style {spec.name}: skipping unresolved target {ref.oid}")
                skipped.append(ref.oid)
                continue
            await element.set_styles([style])
            applied += 1

        return {"styleName": spec.name, "appliedTo": applied, "skipped": skipped}

    async def _add_image(self, op: AddImage) -> Dict[str, Any]:
        ref = op.parent_oid
        parent = await self.resolver.resolve(ref.oid, ref.selector)
        if parent is None or not parent.can(Capability.CHILDREN):
            raise ParentNotFound(f"Parent element {ref.oid} not found")

        image = await parent.append(ElementType.IMAGE)
        if image.can(Capability.IMAGE):
            if op.asset and op.asset.by_id:
                asset = await self.designer.get_asset_by_id(op.asset.by_id)
                await image.set_asset(asset)
            if op.alt:
                await image.set_alt_text(op.alt)

        return {"elementId": image.id, "alt": op.alt}

    # Helpers

    async def _resolve_parent(self, kind: str) -> Element:
        if kind == "selected":
            selected = await self.designer.get_selected_element()
            if selected is not None and selected.can(Capability.CHILDREN):
                return selected

        root = await self.designer.get_root_element()
        if root is None or not root.can(Capability.CHILDREN):
            raise NoValidParent("No valid parent found")
        return root

    async def _find_text_child(self, target: Element) -> Optional[Element]:
        if not target.can(Capability.CHILDREN):
            return None
        for child in await target.get_children():
            if child.kind is ElementType.STRING and child.can(Capability.TEXT):
                return child
        return None
