"""Tests for per-role menus and in-page controls."""

import logging

from gatepass.workflow import Requester, Role, Stage
from gatepass.workflow.menu import NON_SLT_RECEIVER_FIELDS, SLT_RECEIVER_FIELDS


def _titles(menu):
    return [entry.title for entry in menu]


def test_user_menu_is_baseline(menus):
    assert _titles(menus.menu_for(Role.USER)) == ["New Request", "My Requests", "Receive"]


def test_stage_roles_get_their_screen_before_receive(menus):
    assert _titles(menus.menu_for(Role.APPROVER)) == ["New Request", "My Requests", "Executive Approve", "Receive"]
    assert _titles(menus.menu_for(Role.SECURITY_OFFICER)) == ["New Request", "My Requests", "Verify", "Receive"]
    assert _titles(menus.menu_for(Role.PLEADER)) == ["New Request", "My Requests", "Dispatch", "Receive"]
    assert _titles(menus.menu_for(Role.DISPATCHER)) == ["New Request", "My Requests", "Dispatch", "Receive"]


def test_super_admin_menu_order(menus):
    menu = menus.menu_for(Role.SUPER_ADMIN)
    assert [entry.target for entry in menu] == [
        "/newrequest",
        "/myrequests",
        "/request-details",
        "/executiveApproval",
        "/verify",
        "/dispatch",
        "/receive",
        "/admin",
    ]


def test_admin_menu_has_no_request_details(menus):
    assert "Request Details" not in _titles(menus.menu_for(Role.ADMIN))
    assert "Admin" in _titles(menus.menu_for(Role.ADMIN))


def test_legacy_name_resolves_menu(menus):
    assert menus.menu_for("RO1") == menus.menu_for(Role.SECURITY_OFFICER)


def test_unknown_role_falls_back_to_baseline(menus, caplog):
    with caplog.at_level(logging.WARNING, logger="gatepass.workflow.menu"):
        menu = menus.menu_for("Janitor")
    assert menu == menus.menu_for(Role.USER)
    assert "Unknown role" in caplog.text
    assert menus.menu_for(None) == menus.menu_for(Role.USER)


def test_menu_is_deterministic(menus):
    assert menus.menu_for(Role.ADMIN) == menus.menu_for(Role.ADMIN)


def test_menu_entry_to_dict(menus):
    assert menus.menu_for(Role.USER)[0].to_dict() == {"title": "New Request", "target": "/newrequest"}


def test_receiver_fields(menus):
    assert menus.receiver_fields(True) == NON_SLT_RECEIVER_FIELDS
    assert menus.receiver_fields(False) == SLT_RECEIVER_FIELDS
    assert "receiver_contact" in menus.receiver_fields(True)
    assert "receiver_service_no" in menus.receiver_fields(False)


def test_controls_for_creator_at_executive_pending(menus, people, submitted):
    controls = menus.controls_for(people["user"], submitted)
    assert controls == {"cancel", "reassign-executive", "edit-items"}


def test_controls_for_assigned_executive(menus, people, submitted):
    controls = menus.controls_for(people["approver"], submitted)
    assert {"approve", "reject"} <= controls
    assert "cancel" not in controls


def test_controls_for_bystander(menus, people, submitted):
    assert menus.controls_for(people["other"], submitted) == frozenset()
    assert menus.controls_for(people["security"], submitted) == frozenset()


def test_controls_for_admin_include_overrides(menus, people, submitted):
    controls = menus.controls_for(people["admin"], submitted)
    # Assigned executive officer is someone else, so no approve/reject.
    assert controls == {"cancel", "reassign-executive", "edit-items"}


def test_verify_controls_follow_branch_routing(menus, orchestrator, people, submitted):
    ref = submitted.reference_number
    orchestrator.transition(people["approver"], ref, "approve", stage=Stage.EXECUTIVE)
    record = orchestrator.get_request(ref)
    elsewhere = Requester.of("SO002", Role.SECURITY_OFFICER, "Kandy Security", ["Regional Office Kandy"])

    assert {"approve", "reject"} <= menus.controls_for(people["security"], record)
    assert menus.controls_for(elsewhere, record) == frozenset()


def test_mark_returned_control_only_for_parties(menus, orchestrator, people, submitted):
    ref = submitted.reference_number
    orchestrator.transition(people["approver"], ref, "approve", stage=Stage.EXECUTIVE)
    orchestrator.transition(people["security"], ref, "approve", stage=Stage.VERIFY)
    orchestrator.transition(people["dispatcher"], ref, "approve", stage=Stage.DISPATCH)
    record = orchestrator.get_request(ref)

    assert {"approve", "reject", "mark-returned"} <= menus.controls_for(people["user"], record)
    assert menus.controls_for(people["other"], record) == frozenset()
    assert "mark-returned" not in menus.controls_for(people["dispatcher"], record)
