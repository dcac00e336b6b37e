"""
Flowbridge shared data models.

These models define the structure of all data passed between the caller,
the relay and the executor. Field names are snake_case in Python and
camelCase on the wire (the format the Designer extension speaks).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

OID_ATTRIBUTE = "data-oid"

# Enums


class OperationType(str, Enum):
    """Operation discriminator values used on the wire."""

    CREATE_PAGE = "CREATE_PAGE"
    BUILD_TREE = "BUILD_TREE"
    SET_TEXT_BY_OID = "SET_TEXT_BY_OID"
    APPLY_STYLE = "APPLY_STYLE"
    ADD_IMAGE = "ADD_IMAGE"
    TEST_CONNECTION = "TEST_CONNECTION"


class _WireModel(BaseModel):
    """Immutable model that accepts both field names and wire aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# Tree specification


class BuildNode(_WireModel):
    """Declarative description of one element and its children."""

    tag: str = Field(..., min_length=1, description="Semantic element kind (div, section, h1...)")
    oid: Optional[str] = Field(None, description="Opaque identifier stored in data-oid")
    text: Optional[str] = None
    attrs: Optional[Dict[str, str]] = None
    styles: Optional[Dict[str, str]] = Field(None, description="Inline style properties")
    children: Optional[List["BuildNode"]] = None

    @field_validator("attrs")
    @classmethod
    def validate_attrs(cls, v):
        """The data-oid attribute is reserved for the oid field."""
        if v and OID_ATTRIBUTE in v:
            raise ValueError(f"'{OID_ATTRIBUTE}' is reserved, use the 'oid' field instead")
        return v


class ElementRef(_WireModel):
    """Address of one element: an oid plus an optional child path."""

    oid: str = Field(..., min_length=1)
    selector: Optional[str] = Field(None, description="Child path such as 'div > span'")

    @model_validator(mode="before")
    @classmethod
    def coerce_wire_forms(cls, data: Any) -> Any:
        """Accept "oid", ["oid"] and ["oid", "selector"] as well as objects."""
        if isinstance(data, str):
            return {"oid": data}
        if isinstance(data, (list, tuple)):
            if not 1 <= len(data) <= 2:
                raise ValueError("element reference must be [oid] or [oid, selector]")
            return {"oid": data[0], "selector": data[1] if len(data) == 2 else None}
        return data


class StyleSpec(_WireModel):
    """Named style definition for APPLY_STYLE."""

    name: str = Field(..., min_length=1)
    properties: Dict[str, str] = Field(default_factory=dict)
    parent_style_name: Optional[str] = Field(None, alias="parentStyleName")


class AssetRef(_WireModel):
    """Reference to an uploaded asset."""

    by_id: Optional[str] = Field(None, alias="byId")


# Operations


class CreatePage(_WireModel):
    op: Literal["CREATE_PAGE"] = "CREATE_PAGE"
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None


class BuildTree(_WireModel):
    op: Literal["BUILD_TREE"] = "BUILD_TREE"
    parent: Literal["selected", "root"] = "selected"
    tree: BuildNode

    @field_validator("parent", mode="before")
    @classmethod
    def normalize_parent(cls, v):
        """'pageRoot' is the extension's historical name for 'root'."""
        return "root" if v == "pageRoot" else v


class SetText(_WireModel):
    op: Literal["SET_TEXT_BY_OID"] = "SET_TEXT_BY_OID"
    oid: str = Field(..., min_length=1)
    selector: Optional[str] = None
    text: str


class ApplyStyle(_WireModel):
    op: Literal["APPLY_STYLE"] = "APPLY_STYLE"
    style: StyleSpec
    oids: List[ElementRef] = Field(default_factory=list)


class AddImage(_WireModel):
    op: Literal["ADD_IMAGE"] = "ADD_IMAGE"
    parent_oid: ElementRef = Field(..., alias="parentOid")
    asset: Optional[AssetRef] = None
    alt: Optional[str] = None


class TestConnection(_WireModel):
    op: Literal["TEST_CONNECTION"] = "TEST_CONNECTION"


Operation = Annotated[
    Union[CreatePage, BuildTree, SetText, ApplyStyle, AddImage, TestConnection],
    Field(discriminator="op"),
]

OPERATION_ADAPTER: TypeAdapter = TypeAdapter(Operation)


def parse_operation(data: Any):
    """Validate one raw operation dict into its Operation variant."""
    return OPERATION_ADAPTER.validate_python(data)


# Request Models (API Input)


class Task(_WireModel):
    """An ordered batch of operations submitted as one request."""

    ops: List[Operation] = Field(..., description="Operations, executed in order")
    task_id: Optional[str] = Field(None, alias="taskId", description="Correlation id")

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the JSON shape sent to the executor."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PublishRequest(BaseModel):
    """Request to publish the site."""

    model_config = ConfigDict(populate_by_name=True)

    site_id: Optional[str] = Field(None, alias="siteId")
    domain_ids: List[str] = Field(default_factory=list, alias="domainIds")
    publish_to_webflow_subdomain: bool = Field(True, alias="publishToWebflowSubdomain")


# Response Models (API Output)


class OperationResult(BaseModel):
    """Outcome of one operation."""

    op: str
    success: bool
    result: Optional[Any] = None
    error: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class TaskResponse(BaseModel):
    """Reply envelope sent by the executor and returned to the caller."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    result: Optional[List[OperationResult]] = None
    task_id: Optional[str] = Field(None, alias="taskId")
    error: Optional[str] = None
    note: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StatusResponse(BaseModel):
    """Quick readiness summary."""

    websocket: Literal["connected", "disconnected"]
    credentials: Literal["configured", "missing"]
    ready: bool


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: str = Field(..., description="Error message")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "OID_ATTRIBUTE",
    "OperationType",
    "BuildNode",
    "ElementRef",
    "StyleSpec",
    "AssetRef",
    "CreatePage",
    "BuildTree",
    "SetText",
    "ApplyStyle",
    "AddImage",
    "TestConnection",
    "Operation",
    "parse_operation",
    "Task",
    "PublishRequest",
    "OperationResult",
    "TaskResponse",
    "StatusResponse",
    "ErrorResponse",
]
