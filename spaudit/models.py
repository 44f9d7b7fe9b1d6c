"""
Plain data types passed between the walker, the resolver and the remote.

Nothing here talks to the network; instances are read-only views of what
the remote returned.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class NodeKind(Enum):
    """Securable node kinds in a site collection."""

    SITE = "site"      # root web of the site collection
    WEB = "web"        # subsite
    LIST = "list"      # list or document library
    FOLDER = "folder"  # folder item inside a list
    ITEM = "item"      # any other list item or file

    @property
    def is_container(self) -> bool:
        return self in (NodeKind.SITE, NodeKind.WEB, NodeKind.LIST)

    @property
    def is_web(self) -> bool:
        return self in (NodeKind.SITE, NodeKind.WEB)


OBJECT_TYPES = {
    NodeKind.SITE: "Site Collection",
    NodeKind.WEB: "Site",
    NodeKind.LIST: "List or Library",
    NodeKind.FOLDER: "Folder",
    NodeKind.ITEM: "Item",
}


@dataclass(frozen=True)
class TreeNode:
    """
    A securable node discovered during the walk.

    Attributes:
        kind: What sort of node this is
        id: Remote identity (web/list GUID or item id)
        title: Display title
        url: Absolute URL of webs and lists; empty for items
        api_url: REST resource URL the node's permissions hang off
        has_unique_permissions: Known inheritance flag, or None if not loaded yet
        item_count: Number of items (lists only)
        hidden: Whether the list is hidden (lists only)
        form_url: Server-relative default display form (lists only)
        parent: Owning list (folders and items only)
    """

    kind: NodeKind
    id: str
    title: str
    url: str = ""
    api_url: str = ""
    has_unique_permissions: Optional[bool] = None
    item_count: int = 0
    hidden: bool = False
    form_url: str = ""
    parent: Optional["TreeNode"] = field(default=None, repr=False, compare=False)

    @property
    def object_type(self) -> str:
        return OBJECT_TYPES[self.kind]


class PrincipalKind(Enum):
    USER = "user"
    GROUP = "group"    # SharePoint group, expandable
    OTHER = "other"    # security group, distribution list, ...


# SP.Utilities.PrincipalType
PRINCIPAL_TYPE_USER = 1
PRINCIPAL_TYPE_SHAREPOINT_GROUP = 8


@dataclass(frozen=True)
class Principal:
    """A user or group referenced by a role assignment."""

    kind: PrincipalKind
    id: int
    title: str
    login_name: str = ""

    @classmethod
    def from_principal_type(cls, principal_type: int, id: int, title: str, login_name: str = "") -> "Principal":
        if principal_type == PRINCIPAL_TYPE_USER:
            kind = PrincipalKind.USER
        elif principal_type == PRINCIPAL_TYPE_SHAREPOINT_GROUP:
            kind = PrincipalKind.GROUP
        else:
            kind = PrincipalKind.OTHER
        return cls(kind=kind, id=id, title=title, login_name=login_name)

    def same_login(self, other: "Principal") -> bool:
        """Login names are case-insensitive claims strings."""
        return bool(self.login_name) and self.login_name.casefold() == other.login_name.casefold()


@dataclass(frozen=True)
class RoleAssignment:
    """One principal granted something on a node; details are loaded on demand."""

    principal_id: int


@dataclass(frozen=True)
class Page:
    """One batch of a paginated collection plus the cursor for the next one."""

    nodes: List[TreeNode]
    cursor: Optional[str] = None


DIRECT_PERMISSION = "Direct Permission"
SITE_COLLECTION_ADMIN = "Site Collection Administrator"


def group_permission_source(group_title: str) -> str:
    return f"Member of '{group_title}'"


@dataclass(frozen=True)
class ReportRow:
    """One place the target user holds permissions."""

    url: str
    object_type: str
    title: str
    permission_source: str
    permissions: Tuple[str, ...]
