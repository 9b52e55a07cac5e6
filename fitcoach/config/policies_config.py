"""
Row-Level Security Policy Set
This config declares, per table, which callers may see or change which rows.
It is rendered to SQL by scripts/render_policies.py and applied as a
migration, so the database itself performs the row filtering.

A rule is a list of grants; a grant holds when every relation it names ties
the caller to the row. There is no role-based bypass: no admin or coach role
sees rows it is not tied to through a column.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

POLICY_SET_VERSION = "2025.10.1"

ACTIONS = ("select", "insert", "update", "delete")

# Tables whose ownership is inherited through clients.id
PARENT_TABLE = "clients"


@dataclass(frozen=True)
class Relation:
    """`column` equals the caller, on this row or (with `via`) on the parent client row.

    `subject` is what the column is compared to: the caller id, or the
    caller's verified email address (lower-cased).
    """
    column: str
    via: Optional[str] = None
    subject: str = "id"


@dataclass(frozen=True)
class Grant:
    all_of: Tuple[str, ...]
    null_columns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TablePolicy:
    table: str
    relations: Dict[str, Relation]
    select: Tuple[Grant, ...] = ()
    insert: Tuple[Grant, ...] = ()
    update: Tuple[Grant, ...] = ()
    delete: Tuple[Grant, ...] = ()
    # WITH CHECK for updates; the update grants are reused when empty
    update_check: Tuple[Grant, ...] = ()
    audit_columns: Tuple[str, ...] = ()
    immutable_columns: Tuple[str, ...] = ()
    # May go from NULL to a value once, never change afterwards
    write_once_columns: Tuple[str, ...] = ()
    description: str = ""

    def grants(self, action: str) -> Tuple[Grant, ...]:
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        return getattr(self, action)

    def check_grants(self, action: str) -> Tuple[Grant, ...]:
        if action == "update" and self.update_check:
            return self.update_check
        return self.grants(action)


def _g(*relations: str, null: Tuple[str, ...] = ()) -> Grant:
    return Grant(all_of=tuple(relations), null_columns=null)


CLIENT_SCOPED = {
    "owner": Relation("user_id", via="client_id"),
    "client_coach": Relation("coach_id", via="client_id"),
}

POLICIES: Dict[str, TablePolicy] = {
    "clients": TablePolicy(
        table="clients",
        relations={
            "owner": Relation("user_id"),
            "coach": Relation("coach_id"),
            "invitee": Relation("invited_email", subject="email"),
        },
        # An unclaimed profile is also visible to the address it was issued to
        select=(_g("owner"), _g("coach"), _g("invitee", null=("user_id",))),
        # A client may only self-provision without a coach; a coach only creates
        # unlinked profiles, which the invited client then claims
        insert=(_g("owner", null=("coach_id",)), _g("coach", null=("user_id",))),
        update=(_g("owner"), _g("coach"), _g("invitee", null=("user_id",))),
        update_check=(_g("owner"), _g("coach")),
        delete=(_g("coach"),),
        audit_columns=("created_by",),
        immutable_columns=("coach_id", "created_by"),
        write_once_columns=("user_id",),
        description="Client profiles: visible to the client and the managing coach",
    ),
    "messages": TablePolicy(
        table="messages",
        relations={"sender": Relation("sender_id"), "receiver": Relation("receiver_id")},
        select=(_g("sender"), _g("receiver")),
        insert=(_g("sender"),),
        update=(_g("receiver"),),
        audit_columns=("sender_id",),
        immutable_columns=("sender_id", "receiver_id", "content"),
        description="Direct messages: visible to sender and receiver only",
    ),
    "device_integrations": TablePolicy(
        table="device_integrations",
        relations={"owner": Relation("user_id")},
        select=(_g("owner"),),
        insert=(_g("owner"),),
        update=(_g("owner"),),
        delete=(_g("owner"),),
        immutable_columns=("user_id",),
        description="Wearable tokens: visible to the owning user only",
    ),
    "weight_logs": TablePolicy(
        table="weight_logs",
        relations=dict(CLIENT_SCOPED),
        select=(_g("owner"), _g("client_coach")),
        insert=(_g("owner"), _g("client_coach")),
        update=(_g("owner"),),
        delete=(_g("owner"),),
        audit_columns=("created_by",),
        immutable_columns=("client_id", "created_by"),
        description="Weight entries of a client",
    ),
    "workout_logs": TablePolicy(
        table="workout_logs",
        relations=dict(CLIENT_SCOPED),
        select=(_g("owner"), _g("client_coach")),
        insert=(_g("owner"), _g("client_coach")),
        update=(_g("owner"),),
        delete=(_g("owner"),),
        audit_columns=("created_by",),
        immutable_columns=("client_id", "created_by"),
        description="Completed workout sessions of a client",
    ),
    "nutrition_plans": TablePolicy(
        table="nutrition_plans",
        relations={**CLIENT_SCOPED, "coach": Relation("coach_id")},
        select=(_g("owner"), _g("coach")),
        insert=(_g("coach", "client_coach"),),
        update=(_g("coach", "client_coach"),),
        delete=(_g("coach"),),
        audit_columns=("assigned_by",),
        immutable_columns=("client_id", "coach_id", "assigned_by"),
        description="Nutrition plans assigned by the managing coach",
    ),
    "workout_assignments": TablePolicy(
        table="workout_assignments",
        relations={**CLIENT_SCOPED, "coach": Relation("coach_id")},
        select=(_g("owner"), _g("coach")),
        insert=(_g("coach", "client_coach"),),
        update=(_g("owner"), _g("coach", "client_coach")),
        delete=(_g("coach"),),
        audit_columns=("assigned_by",),
        immutable_columns=("client_id", "coach_id", "assigned_by"),
        description="Workouts scheduled for a client by the managing coach",
    ),
    "checkins": TablePolicy(
        table="checkins",
        relations={**CLIENT_SCOPED, "coach": Relation("coach_id")},
        select=(_g("owner"), _g("coach")),
        insert=(_g("coach", "client_coach"),),
        update=(_g("owner"), _g("coach")),
        audit_columns=("created_by",),
        immutable_columns=("client_id", "coach_id", "created_by"),
        description="Scheduled check-ins between a client and their coach",
    ),
}


@dataclass(frozen=True)
class PolicySet:
    version: str
    tables: Dict[str, TablePolicy] = field(default_factory=dict)


POLICY_SET = PolicySet(version=POLICY_SET_VERSION, tables=POLICIES)


def get_policy(table: str) -> TablePolicy:
    try:
        return POLICY_SET.tables[table]
    except KeyError:
        raise KeyError(f"No access policy declared for table '{table}'")


# ----------------------------------------------------------------------------
# In-process evaluation (same semantics as the rendered SQL)
# ----------------------------------------------------------------------------

def _relation_holds(
    relation: Relation,
    caller_id: str,
    caller_email: Optional[str],
    row: Mapping[str, Any],
    parents: Mapping[str, Optional[Mapping[str, Any]]],
) -> bool:
    if relation.via is None:
        value = row.get(relation.column)
    else:
        parent = parents.get(relation.via)
        if parent is None:
            return False
        value = parent.get(relation.column)
    if relation.subject == "email":
        subject = caller_email.lower() if caller_email else None
    else:
        subject = caller_id
    # NULL never equals the caller
    return value is not None and subject is not None and str(value) == subject


def _any_grant_holds(
    policy: TablePolicy,
    grants: Tuple[Grant, ...],
    caller_id: str,
    caller_email: Optional[str],
    row: Mapping[str, Any],
    parents: Mapping[str, Optional[Mapping[str, Any]]],
) -> bool:
    for grant in grants:
        if any(row.get(column) is not None for column in grant.null_columns):
            continue
        if all(
            _relation_holds(policy.relations[name], caller_id, caller_email, row, parents)
            for name in grant.all_of
        ):
            return True
    return False


def evaluate(
    policy: TablePolicy,
    action: str,
    caller_id: Optional[str],
    row: Mapping[str, Any],
    parents: Optional[Mapping[str, Optional[Mapping[str, Any]]]] = None,
    caller_email: Optional[str] = None,
    check: bool = False,
) -> bool:
    """True when `caller_id` may perform `action` on `row`.

    For insert, the row's audit columns must also equal the caller.
    `parents` maps a via-column (e.g. client_id) to the referenced client row.
    With `check=True` an update is judged on the row as it would be written
    (the WITH CHECK side) instead of the row being changed.
    """
    if not caller_id:
        return False
    parents = parents or {}
    if action == "insert":
        for column in policy.audit_columns:
            value = row.get(column)
            if value is None or str(value) != caller_id:
                return False
    grants = policy.check_grants(action) if check else policy.grants(action)
    return _any_grant_holds(policy, grants, caller_id, caller_email, row, parents)


def immutable_violations(policy: TablePolicy, before: Mapping[str, Any], after: Mapping[str, Any]) -> List[str]:
    violations = [
        column for column in policy.immutable_columns
        if column in after and after.get(column) != before.get(column)
    ]
    violations += [
        column for column in policy.write_once_columns
        if column in after and before.get(column) is not None and after.get(column) != before.get(column)
    ]
    return violations


# ----------------------------------------------------------------------------
# SQL rendering
# ----------------------------------------------------------------------------

GUARD_FUNCTION_SQL = """CREATE OR REPLACE FUNCTION public.guard_immutable_columns()
RETURNS TRIGGER AS $$
DECLARE
  col text;
BEGIN
  -- Administrative changes go through the service role
  IF auth.role() = 'service_role' THEN
    RETURN NEW;
  END IF;
  FOREACH col IN ARRAY TG_ARGV LOOP
    IF to_jsonb(NEW) -> col IS DISTINCT FROM to_jsonb(OLD) -> col THEN
      RAISE EXCEPTION 'column % is immutable', col USING ERRCODE = '42501';
    END IF;
  END LOOP;
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;"""


GUARD_WRITE_ONCE_FUNCTION_SQL = """CREATE OR REPLACE FUNCTION public.guard_write_once_columns()
RETURNS TRIGGER AS $$
DECLARE
  col text;
BEGIN
  IF auth.role() = 'service_role' THEN
    RETURN NEW;
  END IF;
  FOREACH col IN ARRAY TG_ARGV LOOP
    IF to_jsonb(OLD) ->> col IS NOT NULL
       AND to_jsonb(NEW) -> col IS DISTINCT FROM to_jsonb(OLD) -> col THEN
      RAISE EXCEPTION 'column % can only be set once', col USING ERRCODE = '42501';
    END IF;
  END LOOP;
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;"""


DROP_POLICIES_SQL = """DO $$
DECLARE
  pol record;
BEGIN
  FOR pol IN SELECT policyname FROM pg_policies WHERE schemaname = 'public' AND tablename = '{table}' LOOP
    EXECUTE format('DROP POLICY %I ON public.{table}', pol.policyname);
  END LOOP;
END $$;"""

CALLER_SQL = {
    "id": "auth.uid()",
    "email": "lower(auth.jwt() ->> 'email')",
}


def relation_sql(policy: TablePolicy, relation: Relation) -> str:
    caller = CALLER_SQL[relation.subject]
    if relation.via is None:
        return f"{relation.column} = {caller}"
    return (
        f"EXISTS (SELECT 1 FROM public.{PARENT_TABLE} p "
        f"WHERE p.id = {policy.table}.{relation.via} AND p.{relation.column} = {caller})"
    )


def grant_sql(policy: TablePolicy, grant: Grant) -> str:
    parts = [relation_sql(policy, policy.relations[name]) for name in grant.all_of]
    parts += [f"{column} IS NULL" for column in grant.null_columns]
    return " AND ".join(parts)


def _grants_sql(policy: TablePolicy, grants: Tuple[Grant, ...]) -> str:
    return " OR ".join(f"({grant_sql(policy, g)})" for g in grants)


def rule_sql(policy: TablePolicy, action: str) -> Optional[str]:
    grants = policy.grants(action)
    if not grants:
        return None
    expression = _grants_sql(policy, grants)
    if action == "insert" and policy.audit_columns:
        audit = " AND ".join(f"{column} = auth.uid()" for column in policy.audit_columns)
        expression = f"{audit} AND ({expression})"
    return expression


def check_sql(policy: TablePolicy, action: str) -> Optional[str]:
    if action == "update" and policy.update_check:
        return _grants_sql(policy, policy.update_check)
    return rule_sql(policy, action)


def policy_name(policy: TablePolicy, action: str) -> str:
    return f"{policy.table}_{action}_v{POLICY_SET_VERSION.replace('.', '_')}"


def _guard_trigger_sql(table: str, trigger: str, function: str, columns: Tuple[str, ...]) -> List[str]:
    arguments = ", ".join(f"'{c}'" for c in columns)
    return [
        f"DROP TRIGGER IF EXISTS {trigger} ON {table};",
        f"CREATE TRIGGER {trigger}\n  BEFORE UPDATE ON {table}\n"
        f"  FOR EACH ROW EXECUTE FUNCTION public.{function}({arguments});",
    ]


def render_table_sql(policy: TablePolicy) -> List[str]:
    table = f"public.{policy.table}"
    statements = [
        f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;",
        f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;",
        # Policies OR together; every existing one is dropped before the current set is created
        DROP_POLICIES_SQL.format(table=policy.table),
    ]
    for action in ACTIONS:
        name = policy_name(policy, action)
        expression = rule_sql(policy, action)
        if expression is None:
            # No policy: RLS denies the action for every authenticated caller
            continue
        command = action.upper()
        if action == "select" or action == "delete":
            clause = f"USING ({expression})"
        elif action == "insert":
            clause = f"WITH CHECK ({expression})"
        else:
            clause = f"USING ({expression})\n  WITH CHECK ({check_sql(policy, action)})"
        statements.append(
            f'CREATE POLICY "{name}" ON {table}\n  FOR {command} TO authenticated\n  {clause};'
        )
    if policy.immutable_columns:
        statements += _guard_trigger_sql(
            table, f"{policy.table}_guard_immutable", "guard_immutable_columns", policy.immutable_columns
        )
    if policy.write_once_columns:
        statements += _guard_trigger_sql(
            table, f"{policy.table}_guard_write_once", "guard_write_once_columns", policy.write_once_columns
        )
    return statements


def render_sql(policy_set: PolicySet = POLICY_SET) -> str:
    lines = [
        f"-- Row-Level Security policy set, version {policy_set.version}",
        "-- Rendered from fitcoach/config/policies_config.py; edit the config, not this file.",
        "",
        GUARD_FUNCTION_SQL,
        "",
        GUARD_WRITE_ONCE_FUNCTION_SQL,
        "",
    ]
    for policy in policy_set.tables.values():
        lines.append(f"-- {policy.table}: {policy.description}")
        lines.extend(render_table_sql(policy))
        lines.append("")
    return "\n".join(lines)
