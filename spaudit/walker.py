"""
Site collection walk.

Visits every web, list and folder under the root web exactly once,
depth-first, and resolves permissions only where inheritance is broken.
Inherited nodes cannot grant anything their ancestors did not, so they are
skipped without loading their role assignments.
"""

import logging
from typing import Callable, Iterator, List, Optional

from .context import AuditContext
from .models import (
    SITE_COLLECTION_ADMIN,
    NodeKind,
    Principal,
    ReportRow,
    TreeNode,
)
from .paging import Collection, CollectionQuery, fetch_all
from .resolver import resolve_permissions

logger = logging.getLogger(__name__)

HAS_UNIQUE_ROLE_ASSIGNMENTS = "HasUniqueRoleAssignments"
FULL_CONTROL = "Full Control"

ProgressCallback = Callable[[TreeNode, int, int, bool], None]
Resolver = Callable[[AuditContext, TreeNode, Principal], List[ReportRow]]


class TreeWalker:
    """
    Depth-first walk over webs, lists and folders.

    Args:
        context: Remote, retry policy and settings
        target: The user being searched for
        resolver: Called once per node with unique permissions
        progress: Called as ``progress(list_node, processed, item_count, finished)``
                  after every record of a list scan, then once with
                  ``finished=True`` when the scan ends
    """

    def __init__(
        self,
        context: AuditContext,
        target: Principal,
        resolver: Resolver = resolve_permissions,
        progress: Optional[ProgressCallback] = None,
    ):
        self.context = context
        self.target = target
        self.resolver = resolver
        self.progress = progress

    def walk(self, root: TreeNode) -> Iterator[ReportRow]:
        """Yield report rows for ``root`` and every web below it."""
        if not root.kind.is_web:
            raise ValueError(f"Walk must start at a web, not {root.kind.value}")

        if root.kind is NodeKind.SITE and self.context.settings.include_site_admins:
            yield from self._site_admin_rows(root)

        # Explicit stack instead of recursion; children are pushed in reverse
        # so they pop in remote order.
        stack = [root]
        while stack:
            web = stack.pop()
            yield from self._visit_web(web)
            children = list(fetch_all(self.context.remote, self._query(web, Collection.WEBS), self.context.policy))
            stack.extend(reversed(children))

    def _query(self, container: TreeNode, collection: Collection) -> CollectionQuery:
        settings = self.context.settings
        return CollectionQuery(
            container=container,
            collection=collection,
            batch_size=settings.batch_size,
            folders_only=settings.folders_only,
        )

    def _has_unique_permissions(self, node: TreeNode) -> bool:
        if node.has_unique_permissions is not None:
            return node.has_unique_permissions
        return bool(self.context.call(self.context.remote.get_flag, node, HAS_UNIQUE_ROLE_ASSIGNMENTS))

    def _resolve(self, node: TreeNode) -> List[ReportRow]:
        rows = self.resolver(self.context, node, self.target)
        logger.debug("%s %r: %d matching assignment(s)", node.object_type, node.title, len(rows))
        return rows

    def _site_admin_rows(self, root: TreeNode) -> Iterator[ReportRow]:
        admins = self.context.call(self.context.remote.get_site_admins)
        if any(admin.same_login(self.target) for admin in admins):
            yield ReportRow(
                url=root.url,
                object_type=root.object_type,
                title=root.title,
                permission_source=SITE_COLLECTION_ADMIN,
                permissions=(FULL_CONTROL,),
            )

    def _is_excluded(self, lst: TreeNode) -> bool:
        return lst.hidden or lst.title in self.context.settings.excluded_lists

    def _visit_web(self, web: TreeNode) -> Iterator[ReportRow]:
        logger.info("Scanning %s %r (%s)", web.object_type, web.title, web.url)
        if self._has_unique_permissions(web):
            yield from self._resolve(web)
        else:
            logger.debug("Skipping inherited %s %r", web.object_type, web.title)

        for lst in fetch_all(self.context.remote, self._query(web, Collection.LISTS), self.context.policy):
            if self._is_excluded(lst):
                logger.debug("Skipping excluded list %r", lst.title)
                continue
            yield from self._visit_list(lst)

    def _visit_list(self, lst: TreeNode) -> Iterator[ReportRow]:
        logger.info("Scanning list %r (%d item(s))", lst.title, lst.item_count)
        processed = 0
        for record in fetch_all(self.context.remote, self._query(lst, Collection.ITEMS), self.context.policy):
            processed += 1
            if self.progress is not None:
                self.progress(lst, processed, lst.item_count, False)
            if record.kind is not NodeKind.FOLDER:
                continue
            if self._has_unique_permissions(record):
                yield from self._resolve(record)
        if self.progress is not None:
            self.progress(lst, processed, lst.item_count, True)

        if self._has_unique_permissions(lst):
            yield from self._resolve(lst)
        else:
            logger.debug("Skipping inherited list %r", lst.title)


def audit_user_permissions(
    context: AuditContext,
    user: str,
    progress: Optional[ProgressCallback] = None,
) -> Iterator[ReportRow]:
    """
    Audit the site collection in ``context`` for everything ``user`` can access.

    Args:
        context: Remote, retry policy and settings
        user: Login name or email of the user to search for
        progress: Optional list scan progress callback

    Returns:
        Lazy sequence of report rows, in walk order
    """
    remote = context.remote
    target = context.call(remote.ensure_user, user)
    logger.info("Searching permissions for %s (%s)", target.title, target.login_name)
    root = context.call(remote.get_root_web)
    yield from TreeWalker(context, target, progress=progress).walk(root)
