"""Policy set evaluation and SQL rendering."""

import pytest

from fitcoach.config.policies_config import (
    ACTIONS, POLICY_SET, evaluate, get_policy, immutable_violations, render_sql, render_table_sql
)

COACH_A, COACH_B, CLIENT_A, CLIENT_B = "coach-a", "coach-b", "client-a", "client-b"

MANAGED = {"id": "c1", "user_id": CLIENT_A, "coach_id": COACH_A, "created_by": COACH_A}
INVITATION = {
    "id": "c3", "user_id": None, "coach_id": COACH_A, "created_by": COACH_A, "invited_email": "client-a@example.com",
}


def test_every_table_declares_a_read_rule():
    for policy in POLICY_SET.tables.values():
        assert policy.select, policy.table


def test_unknown_table_has_no_policy():
    with pytest.raises(KeyError):
        get_policy("invoices")


def test_unknown_action_rejected():
    with pytest.raises(ValueError):
        get_policy("clients").grants("truncate")


def test_client_visible_to_owner_and_coach_only():
    clients = get_policy("clients")
    assert evaluate(clients, "select", CLIENT_A, MANAGED)
    assert evaluate(clients, "select", COACH_A, MANAGED)
    assert not evaluate(clients, "select", COACH_B, MANAGED)
    assert not evaluate(clients, "select", CLIENT_B, MANAGED)


def test_unassigned_client_visible_to_owner_only():
    """A NULL coach_id never matches anyone, coaches included."""
    row = {"id": "c2", "user_id": CLIENT_A, "coach_id": None, "created_by": CLIENT_A}
    clients = get_policy("clients")
    assert evaluate(clients, "select", CLIENT_A, row)
    assert not evaluate(clients, "select", COACH_A, row)
    assert not evaluate(clients, "select", COACH_B, row)


def test_missing_caller_never_allowed():
    for action in ACTIONS:
        assert not evaluate(get_policy("clients"), action, None, MANAGED)
        assert not evaluate(get_policy("clients"), action, "", MANAGED)


def test_insert_requires_audit_column_to_be_caller():
    clients = get_policy("clients")
    assert evaluate(clients, "insert", COACH_A, INVITATION)
    forged = dict(INVITATION, created_by=COACH_B)
    assert not evaluate(clients, "insert", COACH_A, forged)
    assert not evaluate(clients, "insert", COACH_A, dict(INVITATION, created_by=None))


def test_coach_cannot_link_a_user_on_insert():
    """A coach-created profile can never name the client account itself."""
    clients = get_policy("clients")
    takeover = dict(INVITATION, user_id=CLIENT_A, coach_id=COACH_B, created_by=COACH_B)
    assert not evaluate(clients, "insert", COACH_B, takeover)
    assert not evaluate(clients, "insert", COACH_A, MANAGED)


def test_invitation_visible_to_invited_address_until_claimed():
    clients = get_policy("clients")
    assert evaluate(clients, "select", CLIENT_A, INVITATION, caller_email="Client-A@Example.com")
    assert not evaluate(clients, "select", CLIENT_B, INVITATION, caller_email="client-b@example.com")
    assert not evaluate(clients, "select", CLIENT_A, INVITATION)
    claimed = dict(INVITATION, user_id=CLIENT_B)
    assert not evaluate(clients, "select", CLIENT_A, claimed, caller_email="client-a@example.com")


def test_claim_must_link_the_caller():
    clients = get_policy("clients")
    email = "client-a@example.com"
    assert evaluate(clients, "update", CLIENT_A, INVITATION, caller_email=email)
    assert evaluate(clients, "update", CLIENT_A, dict(INVITATION, user_id=CLIENT_A), caller_email=email, check=True)
    assert not evaluate(clients, "update", CLIENT_A, dict(INVITATION, user_id=CLIENT_B), caller_email=email, check=True)
    # Editing an invitation without claiming it is not allowed
    assert not evaluate(clients, "update", CLIENT_A, dict(INVITATION, notes="x"), caller_email=email, check=True)


def test_coach_cannot_attach_client_to_another_coach():
    row = {"user_id": None, "coach_id": COACH_A, "created_by": COACH_B}
    assert not evaluate(get_policy("clients"), "insert", COACH_B, row)


def test_client_self_provisioning_cannot_pick_a_coach():
    clients = get_policy("clients")
    own = {"user_id": CLIENT_A, "coach_id": None, "created_by": CLIENT_A}
    assert evaluate(clients, "insert", CLIENT_A, own)
    assert not evaluate(clients, "insert", CLIENT_A, dict(own, coach_id=COACH_A))


def test_only_managing_coach_deletes_client():
    clients = get_policy("clients")
    assert evaluate(clients, "delete", COACH_A, MANAGED)
    assert not evaluate(clients, "delete", CLIENT_A, MANAGED)
    assert not evaluate(clients, "delete", COACH_B, MANAGED)


def test_messages_between_participants_only():
    messages = get_policy("messages")
    row = {"sender_id": CLIENT_A, "receiver_id": COACH_A, "content": "hi"}
    assert evaluate(messages, "select", CLIENT_A, row)
    assert evaluate(messages, "select", COACH_A, row)
    assert not evaluate(messages, "select", CLIENT_B, row)
    assert not evaluate(messages, "insert", CLIENT_B, row)
    assert evaluate(messages, "update", COACH_A, row)
    assert not evaluate(messages, "update", CLIENT_A, row)
    assert not evaluate(messages, "delete", CLIENT_A, row)


def test_device_integrations_hidden_from_coach():
    integrations = get_policy("device_integrations")
    row = {"user_id": CLIENT_A, "provider": "fitbit", "access_token": "secret"}
    assert evaluate(integrations, "select", CLIENT_A, row)
    assert not evaluate(integrations, "select", COACH_A, row)


def test_logs_inherit_access_from_client_row():
    weight = get_policy("weight_logs")
    row = {"client_id": "c1", "created_by": CLIENT_A}
    parents = {"client_id": MANAGED}
    assert evaluate(weight, "select", CLIENT_A, row, parents)
    assert evaluate(weight, "select", COACH_A, row, parents)
    assert not evaluate(weight, "select", COACH_B, row, parents)
    assert evaluate(weight, "insert", CLIENT_A, row, parents)
    assert not evaluate(weight, "insert", CLIENT_B, dict(row, created_by=CLIENT_B), parents)
    # Parent not visible: nothing holds
    assert not evaluate(weight, "select", CLIENT_A, row, {"client_id": None})


def test_nutrition_plan_needs_managing_coach():
    plans = get_policy("nutrition_plans")
    parents = {"client_id": MANAGED}
    own = {"client_id": "c1", "coach_id": COACH_A, "assigned_by": COACH_A}
    foreign = {"client_id": "c1", "coach_id": COACH_B, "assigned_by": COACH_B}
    assert evaluate(plans, "insert", COACH_A, own, parents)
    assert not evaluate(plans, "insert", COACH_B, foreign, parents)
    assert not evaluate(plans, "insert", CLIENT_A, dict(own, assigned_by=CLIENT_A), parents)


def test_immutable_violations():
    clients = get_policy("clients")
    assert immutable_violations(clients, MANAGED, {"notes": "x"}) == []
    assert immutable_violations(clients, MANAGED, {"coach_id": COACH_A}) == []
    assert immutable_violations(clients, MANAGED, {"coach_id": COACH_B}) == ["coach_id"]
    assert immutable_violations(clients, MANAGED, {"user_id": CLIENT_B}) == ["user_id"]
    assert immutable_violations(clients, INVITATION, {"user_id": CLIENT_A}) == []


def test_rendered_sql_forces_rls_on_every_table():
    sql = render_sql()
    for table in POLICY_SET.tables:
        assert f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY;" in sql
        assert f"ALTER TABLE public.{table} FORCE ROW LEVEL SECURITY;" in sql
    assert "guard_immutable_columns" in sql
    assert POLICY_SET.version in sql


def test_rendered_policies_target_authenticated_only():
    statements = render_table_sql(get_policy("clients"))
    creates = [s for s in statements if s.startswith("CREATE POLICY")]
    assert len(creates) == 4
    assert all("TO authenticated" in s for s in creates)
    assert not any("anon" in s or "service_role" in s for s in creates)


def test_rendered_insert_checks_audit_column():
    statements = render_table_sql(get_policy("weight_logs"))
    insert = next(s for s in statements if "FOR INSERT" in s)
    assert "WITH CHECK (created_by = auth.uid() AND" in insert
    assert "EXISTS (SELECT 1 FROM public.clients p WHERE p.id = weight_logs.client_id" in insert


def test_action_without_grants_renders_no_policy():
    statements = render_table_sql(get_policy("messages"))
    assert not any("FOR DELETE" in s for s in statements)


def test_render_drops_stale_policies_first():
    statements = render_table_sql(get_policy("checkins"))
    drop_index = next(i for i, s in enumerate(statements) if "DROP POLICY" in s)
    create_index = next(i for i, s in enumerate(statements) if s.startswith("CREATE POLICY"))
    assert drop_index < create_index


def test_rendered_claim_policy():
    statements = render_table_sql(get_policy("clients"))
    select = next(s for s in statements if "FOR SELECT" in s)
    assert "(invited_email = lower(auth.jwt() ->> 'email') AND user_id IS NULL)" in select
    update = next(s for s in statements if "FOR UPDATE" in s)
    using, check = update.split("WITH CHECK")
    assert "invited_email" in using
    assert "invited_email" not in check
    assert any("guard_write_once_columns('user_id')" in s for s in statements)
    assert not any("guard_immutable_columns('user_id'" in s for s in statements)


def test_workout_assignment_needs_managing_coach():
    assignments = get_policy("workout_assignments")
    parents = {"client_id": MANAGED}
    own = {"client_id": "c1", "coach_id": COACH_A, "assigned_by": COACH_A, "status": "assigned"}
    assert evaluate(assignments, "insert", COACH_A, own, parents)
    assert not evaluate(assignments, "insert", COACH_B, dict(own, coach_id=COACH_B, assigned_by=COACH_B), parents)
    assert evaluate(assignments, "select", CLIENT_A, own, parents)
    assert evaluate(assignments, "update", CLIENT_A, own, parents)
    assert not evaluate(assignments, "select", CLIENT_B, own, parents)
    assert not evaluate(assignments, "delete", CLIENT_A, own, parents)
