from __future__ import annotations

from spaudit.models import DIRECT_PERMISSION, Principal, PrincipalKind, ReportRow
from spaudit.resolver import display_url, resolve_permissions
from tests.fakes import TENANT, document_list, folder, group, item, login, user, web


def test_direct_grant_yields_one_row(remote, make_context, alice):
    node = web("hr", unique=True)
    remote.grant(node, alice, "Edit")

    rows = resolve_permissions(make_context(), node, alice)

    assert rows == [ReportRow(node.url, "Site", "hr", DIRECT_PERMISSION, ("Edit",))]


def test_group_grant_yields_member_of_row(remote, make_context, alice):
    node = document_list("Docs", unique=True)
    marketing = group("Marketing", 50)
    remote.grant(node, marketing, "Read")
    remote.members[50] = [user("bob", 12), alice]

    rows = resolve_permissions(make_context(), node, alice)

    assert len(rows) == 1
    assert rows[0].permission_source == "Member of 'Marketing'"
    assert rows[0].permissions == ("Read",)
    assert rows[0].object_type == "List or Library"


def test_group_without_target_yields_nothing(remote, make_context, alice):
    node = document_list("Docs", unique=True)
    remote.grant(node, group("Marketing", 50), "Read")
    remote.members[50] = [user("bob", 12)]

    assert resolve_permissions(make_context(), node, alice) == []
    # permission levels are only loaded for matches
    assert remote.calls_to("get_permission_names") == []


def test_unrelated_principals_yield_no_rows(remote, make_context, alice):
    node = web("hr", unique=True)
    remote.grant(node, user("bob", 12), "Full Control")
    remote.grant(node, user("carol", 13), "Edit")

    assert resolve_permissions(make_context(), node, alice) == []
    assert remote.calls_to("get_group_members") == []


def test_rows_follow_assignment_order(remote, make_context, alice):
    node = web("hr", unique=True)
    remote.grant(node, group("Owners", 3), "Full Control")
    remote.grant(node, alice, "Contribute", "Approve")
    remote.members[3] = [alice]

    rows = resolve_permissions(make_context(), node, alice)

    assert [r.permission_source for r in rows] == ["Member of 'Owners'", DIRECT_PERMISSION]
    assert rows[1].permissions == ("Contribute", "Approve")


def test_login_match_ignores_case(remote, make_context, alice):
    node = web("hr", unique=True)
    shouting = Principal(PrincipalKind.USER, 99, "Alice", login("alice").upper())
    remote.grant(node, shouting, "Read")

    assert len(resolve_permissions(make_context(), node, alice)) == 1


def test_limited_access_is_dropped(remote, make_context, alice):
    node = web("hr", unique=True)
    remote.grant(node, alice, "Limited Access")
    remote.grant(node, group("Visitors", 4), "Read", "Limited Access")
    remote.members[4] = [alice]

    rows = resolve_permissions(make_context(), node, alice)

    assert [r.permissions for r in rows] == [("Read",)]


def test_limited_access_kept_when_configured(remote, make_context, alice):
    node = web("hr", unique=True)
    remote.grant(node, alice, "Limited Access")

    rows = resolve_permissions(make_context(skip_limited_access=False), node, alice)

    assert rows[0].permissions == ("Limited Access",)


def test_security_groups_are_not_expanded(remote, make_context, alice):
    node = web("hr", unique=True)
    remote.grant(node, Principal(PrincipalKind.OTHER, 7, "Everyone", "c:0(.s|true"), "Read")

    assert resolve_permissions(make_context(), node, alice) == []
    assert remote.calls_to("get_group_members") == []


def test_plain_items_are_skipped_without_remote_calls(remote, make_context, alice):
    lst = document_list("Docs")

    assert resolve_permissions(make_context(), item("5", lst), alice) == []
    assert remote.calls == []


def test_throttled_assignment_load_is_retried(remote, make_context, alice, sleeps):
    node = web("hr", unique=True)
    remote.grant(node, alice, "Edit")
    remote.throttle["get_role_assignments"] = 1
    remote.throttle["get_permission_names"] = 2

    rows = resolve_permissions(make_context(), node, alice)

    assert len(rows) == 1
    assert sleeps == [5.0, 5.0, 10.0]


def test_folder_display_url_uses_list_form():
    lst = document_list("Docs")
    assert display_url(folder("42", lst)) == f"{TENANT}/sites/root/Docs/Forms/DispForm.aspx?ID=42"


def test_container_display_url_is_own_url():
    lst = document_list("Docs")
    assert display_url(lst) == lst.url
    assert display_url(web("hr")) == f"{TENANT}/sites/root/hr"
