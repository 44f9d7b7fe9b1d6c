#!/usr/bin/env python3
"""
SharePoint REST API client used by the permission audit.

Each public method performs exactly one remote round trip (``ensure_user``
also fetches a request digest) and raises ``Throttled`` when SharePoint
asks us to back off. Retrying is the caller's job, see ``retry.RetryPolicy``.

Prerequisites:
- requests library (pip install requests)
- A bearer token issued for the SharePoint resource (not Microsoft Graph)
"""

from typing import Dict, List, Optional
from urllib.parse import urlsplit

import requests

from .errors import THROTTLE_STATUS_CODES, SharePointApiError, Throttled, parse_retry_after
from .models import NodeKind, Page, Principal, RoleAssignment, TreeNode
from .paging import Collection, CollectionQuery

FSOBJTYPE_FOLDER = 1
NEXT_LINK = "odata.nextLink"


class SharePointClient:
    """Thin synchronous client over ``<site>/_api``."""

    def __init__(
        self,
        site_url: str,
        access_token: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.site_url = site_url.rstrip("/")
        parts = urlsplit(self.site_url)
        self.origin = f"{parts.scheme}://{parts.netloc}"
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json;odata=nometadata",
        })

    # --- HTTP plumbing ---------------------------------------------------

    def _check(self, resp: requests.Response, operation: str) -> Dict:
        if resp.status_code in THROTTLE_STATUS_CODES:
            raise Throttled(
                resp.status_code,
                retry_after=parse_retry_after(resp.headers.get("Retry-After")),
                operation=operation,
            )
        if not resp.ok:
            raise SharePointApiError(resp.status_code, operation, resp.text)
        return resp.json()

    def _get(self, url: str, operation: str, params: Optional[Dict] = None) -> Dict:
        resp = self.session.get(url, params=params, timeout=self.timeout)
        return self._check(resp, operation)

    def _post(self, url: str, operation: str, payload: Optional[Dict] = None) -> Dict:
        digest = self._check(
            self.session.post(f"{self.site_url}/_api/contextinfo", timeout=self.timeout),
            "get request digest",
        )["FormDigestValue"]
        resp = self.session.post(
            url,
            json=payload,
            headers={"X-RequestDigest": digest, "Content-Type": "application/json;odata=nometadata"},
            timeout=self.timeout,
        )
        return self._check(resp, operation)

    # --- node construction -----------------------------------------------

    def _web_node(self, data: Dict, kind: NodeKind) -> TreeNode:
        url = data["Url"].rstrip("/")
        return TreeNode(
            kind=kind,
            id=data["Id"],
            title=data.get("Title", ""),
            url=url,
            api_url=f"{url}/_api/web",
            has_unique_permissions=data.get("HasUniqueRoleAssignments"),
        )

    def _list_node(self, web: TreeNode, data: Dict) -> TreeNode:
        root_folder = data.get("RootFolder") or {}
        return TreeNode(
            kind=NodeKind.LIST,
            id=data["Id"],
            title=data.get("Title", ""),
            url=self.origin + root_folder.get("ServerRelativeUrl", ""),
            api_url=f"{web.api_url}/lists(guid'{data['Id']}')",
            has_unique_permissions=data.get("HasUniqueRoleAssignments"),
            item_count=data.get("ItemCount", 0),
            hidden=data.get("Hidden", False),
            form_url=data.get("DefaultDisplayFormUrl", ""),
        )

    def _item_node(self, lst: TreeNode, data: Dict) -> TreeNode:
        is_folder = data.get("FileSystemObjectType") == FSOBJTYPE_FOLDER
        item_id = str(data["Id"])
        return TreeNode(
            kind=NodeKind.FOLDER if is_folder else NodeKind.ITEM,
            id=item_id,
            title=data.get("FileLeafRef") or data.get("Title") or item_id,
            api_url=f"{lst.api_url}/items({item_id})",
            parent=lst,
        )

    # --- remote interface ------------------------------------------------

    def get_root_web(self) -> TreeNode:
        """
        The web at ``site_url``. It is the SITE node only when it is the top
        web of its site collection; a subsite URL gives a WEB node.
        """
        data = self._get(
            f"{self.site_url}/_api/web",
            "get root web",
            params={"$select": "Id,Title,Url,HasUniqueRoleAssignments"},
        )
        collection = self._get(
            f"{self.site_url}/_api/site",
            "get site collection",
            params={"$select": "Url"},
        )
        is_top_web = data["Url"].rstrip("/").casefold() == collection["Url"].rstrip("/").casefold()
        return self._web_node(data, NodeKind.SITE if is_top_web else NodeKind.WEB)

    def _first_page_request(self, query: CollectionQuery):
        container = query.container
        if query.collection is Collection.WEBS:
            return f"{container.api_url}/webs", {
                "$select": "Id,Title,Url,HasUniqueRoleAssignments",
            }
        if query.collection is Collection.LISTS:
            return f"{container.api_url}/lists", {
                "$select": "Id,Title,Hidden,ItemCount,HasUniqueRoleAssignments,"
                           "DefaultDisplayFormUrl,RootFolder/ServerRelativeUrl",
                "$expand": "RootFolder",
            }
        params = {
            "$select": "Id,Title,FileLeafRef,FileSystemObjectType",
            "$orderby": "Id asc",
            "$top": str(query.batch_size),
        }
        if query.folders_only:
            params["$filter"] = f"FSObjType eq {FSOBJTYPE_FOLDER}"
        return f"{container.api_url}/items", params

    def fetch_page(self, query: CollectionQuery, cursor: Optional[str] = None) -> Page:
        """
        Fetch one batch of ``query``.

        ``cursor`` is the next-page link returned by the previous call; None
        starts from the beginning. The returned cursor is None when done.
        """
        operation = f"list {query.collection.value} of '{query.container.title}'"
        if cursor is None:
            url, params = self._first_page_request(query)
            data = self._get(url, operation, params=params)
        else:
            data = self._get(cursor, operation)

        records = data.get("value", [])
        if query.collection is Collection.WEBS:
            nodes = [self._web_node(r, NodeKind.WEB) for r in records]
        elif query.collection is Collection.LISTS:
            nodes = [self._list_node(query.container, r) for r in records]
        else:
            nodes = [self._item_node(query.container, r) for r in records]
        return Page(nodes=nodes, cursor=data.get(NEXT_LINK))

    def get_flag(self, node: TreeNode, flag_name: str) -> bool:
        data = self._get(node.api_url, f"get {flag_name} of '{node.title}'", params={"$select": flag_name})
        return bool(data.get(flag_name))

    def get_role_assignments(self, node: TreeNode) -> List[RoleAssignment]:
        data = self._get(
            f"{node.api_url}/roleassignments",
            f"get role assignments of '{node.title}'",
            params={"$select": "PrincipalId"},
        )
        return [RoleAssignment(principal_id=r["PrincipalId"]) for r in data.get("value", [])]

    def get_principal(self, node: TreeNode, principal_id: int) -> Principal:
        data = self._get(
            f"{node.api_url}/roleassignments/getbyprincipalid({principal_id})/member",
            f"get principal {principal_id}",
            params={"$select": "Id,Title,LoginName,PrincipalType"},
        )
        return _principal(data)

    def get_permission_names(self, node: TreeNode, principal_id: int) -> List[str]:
        data = self._get(
            f"{node.api_url}/roleassignments/getbyprincipalid({principal_id})/roledefinitionbindings",
            f"get permission levels of principal {principal_id}",
            params={"$select": "Name"},
        )
        return [r["Name"] for r in data.get("value", [])]

    def get_group_members(self, group: Principal) -> List[Principal]:
        data = self._get(
            f"{self.site_url}/_api/web/sitegroups/getbyid({group.id})/users",
            f"get members of '{group.title}'",
            params={"$select": "Id,Title,LoginName,PrincipalType"},
        )
        return [_principal(r) for r in data.get("value", [])]

    def get_site_admins(self) -> List[Principal]:
        data = self._get(
            f"{self.site_url}/_api/web/siteusers",
            "get site collection administrators",
            params={"$filter": "IsSiteAdmin eq true", "$select": "Id,Title,LoginName,PrincipalType"},
        )
        return [_principal(r) for r in data.get("value", [])]

    def ensure_user(self, login_name: str) -> Principal:
        """Resolve a login name or email to a site user, creating the site user if needed."""
        data = self._post(
            f"{self.site_url}/_api/web/ensureuser",
            f"resolve user '{login_name}'",
            payload={"logonName": login_name},
        )
        return _principal(data)


def _principal(data: Dict) -> Principal:
    return Principal.from_principal_type(
        data.get("PrincipalType", 0),
        id=data["Id"],
        title=data.get("Title", ""),
        login_name=data.get("LoginName", ""),
    )
