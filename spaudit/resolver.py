"""
Permission resolution for a single securable node.

Loads the node's role assignments, expands SharePoint groups one level and
reports every assignment that reaches the target user.
"""

import logging
from typing import List
from urllib.parse import urlsplit

from .context import AuditContext
from .models import (
    DIRECT_PERMISSION,
    NodeKind,
    Principal,
    PrincipalKind,
    ReportRow,
    TreeNode,
    group_permission_source,
)

logger = logging.getLogger(__name__)

LIMITED_ACCESS = "Limited Access"


def display_url(node: TreeNode) -> str:
    """
    Absolute URL a person would open to see ``node``.

    Folders resolve through their list's default display form; webs and
    lists use their own URL.
    """
    if node.kind is NodeKind.FOLDER:
        parent = node.parent
        if parent is None or not parent.form_url:
            return node.url
        parts = urlsplit(parent.url)
        return f"{parts.scheme}://{parts.netloc}{parent.form_url}?ID={node.id}"
    return node.url


def _target_in(members: List[Principal], target: Principal) -> bool:
    return any(member.same_login(target) for member in members)


def resolve_permissions(context: AuditContext, node: TreeNode, target: Principal) -> List[ReportRow]:
    """
    Return one row per role assignment on ``node`` that grants ``target`` anything.

    Plain items are never examined. Rows follow the remote's role assignment
    order. Nested groups are not expanded.
    """
    if not (node.kind.is_container or node.kind is NodeKind.FOLDER):
        return []

    remote = context.remote
    url = display_url(node)
    rows = []

    for assignment in context.call(remote.get_role_assignments, node):
        principal = context.call(remote.get_principal, node, assignment.principal_id)

        if principal.kind is PrincipalKind.USER:
            if not principal.same_login(target):
                continue
            source = DIRECT_PERMISSION
        elif principal.kind is PrincipalKind.GROUP:
            members = context.call(remote.get_group_members, principal)
            if not _target_in(members, target):
                continue
            source = group_permission_source(principal.title)
        else:
            logger.debug("Not expanding %r on %s (not a SharePoint group)", principal.title, url)
            continue

        names = context.call(remote.get_permission_names, node, assignment.principal_id)
        if context.settings.skip_limited_access:
            names = [name for name in names if name != LIMITED_ACCESS]
        if not names:
            continue

        rows.append(ReportRow(
            url=url,
            object_type=node.object_type,
            title=node.title,
            permission_source=source,
            permissions=tuple(names),
        ))

    return rows
