"""
Tenant-scoped data gateway.

Every gateway wraps a Supabase client bound to exactly one credential. Rows
are filtered by the database's RLS policies using that credential; nothing
here decides visibility. Callers build one per request with `for_caller` and
drop it with the request.
"""

import logging
import httpx
from datetime import date, datetime, timezone
from fastapi import HTTPException
from postgrest.exceptions import APIError
from supabase import Client
from fitcoach.core.errors import NotFoundOrDenied, Unauthenticated, Unavailable, ValidationFailed, WriteDenied
from fitcoach.database.supabase_client import SupabaseClient
from fitcoach.modules.auth.schemas import BearerToken
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

DATA_STORE = "data store"

# PostgREST / PostgreSQL error codes
RLS_VIOLATION = "42501"
NO_ROWS = "PGRST116"


def _as_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _row_payload(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: _as_json(value) for key, value in row.items()}


class TenantGateway:
    def __init__(self, supabase: Client, scope: str):
        self.supabase = supabase
        self.scope = scope

    @classmethod
    def for_caller(
        cls,
        credential: BearerToken,
        client_factory: Callable[[str], Client] = SupabaseClient.create_user_client,
    ) -> "TenantGateway":
        """Gateway whose every call carries the caller's token."""
        if credential is None or not credential.token:
            raise Unauthenticated("Unauthorized - No token provided")
        return cls(client_factory(credential.token), scope="caller")

    @classmethod
    def for_service(
        cls,
        reason: str,
        client_factory: Callable[[str], Client] = SupabaseClient.create_service_client,
    ) -> "TenantGateway":
        """Service-role gateway (RLS bypassed). Requires a stated reason; never a default."""
        if not reason or not reason.strip():
            raise ValueError("A service gateway requires an explicit reason")
        logger.warning("Service gateway opened: %s", reason)
        return cls(client_factory(reason), scope=f"service:{reason}")

    @property
    def is_service(self) -> bool:
        return self.scope.startswith("service:")

    # ------------------------------------------------------------------
    # Physical calls
    # ------------------------------------------------------------------

    def _execute(self, query, resource: str):
        try:
            return query.execute()
        except APIError as e:
            raise self._translate(e, resource)
        except httpx.HTTPError as e:
            logger.error("Data store request failed for %s: %s", resource, e)
            raise Unavailable(DATA_STORE)

    def _translate(self, error: APIError, resource: str) -> HTTPException:
        code = str(error.code or "")
        if code == RLS_VIOLATION:
            logger.warning("Policy rejected write on %s (%s)", resource, self.scope)
            return WriteDenied(resource)
        if code == NO_ROWS:
            return NotFoundOrDenied(resource)
        if code.startswith("PGRST3"):
            # JWT rejected by PostgREST (expired or bad signature)
            return Unauthenticated()
        logger.error("Data store error on %s: code=%s message=%s", resource, code, error.message)
        if code[:2] in ("22", "23"):
            return ValidationFailed(f"Invalid data for {resource}")
        return HTTPException(status_code=500, detail=f"Failed to process {resource}")

    def _select(self, table: str, resource: str, build=None) -> List[Dict[str, Any]]:
        query = self.supabase.table(table).select("*")
        if build is not None:
            query = build(query)
        result = self._execute(query, resource)
        return list(result.data or [])

    def _get_one(self, table: str, resource: str, build) -> Optional[Dict[str, Any]]:
        rows = self._select(table, resource, lambda q: build(q).limit(1))
        return rows[0] if rows else None

    def _get_by_id(self, table: str, resource: str, record_id: str) -> Dict[str, Any]:
        row = self._get_one(table, resource, lambda q: q.eq("id", record_id))
        if row is None:
            raise NotFoundOrDenied(resource)
        return row

    def _insert(self, table: str, resource: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        result = self._execute(self.supabase.table(table).insert(_row_payload(row)), resource)
        if not result.data:
            raise WriteDenied(resource)
        return result.data[0]

    def _update(self, table: str, resource: str, record_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        if not changes:
            raise ValidationFailed(f"No changes supplied for {resource}")
        query = self.supabase.table(table).update(_row_payload(changes)).eq("id", record_id)
        result = self._execute(query, resource)
        # Zero rows means RLS hid the row or it does not exist; never a silent success
        if not result.data:
            raise NotFoundOrDenied(resource)
        return result.data[0]

    def _delete(self, table: str, resource: str, record_id: str) -> None:
        result = self._execute(self.supabase.table(table).delete().eq("id", record_id), resource)
        if not result.data:
            raise NotFoundOrDenied(resource)

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def get_clients_visible_to_caller(self) -> List[Dict[str, Any]]:
        return self._select("clients", "Client", lambda q: q.order("created_at", desc=True))

    def get_client(self, client_id: str) -> Dict[str, Any]:
        return self._get_by_id("clients", "Client", client_id)

    def get_client_by_user_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        # user_id is unique (clients_user_id_key); oldest first otherwise
        return self._get_one(
            "clients",
            "Client",
            lambda q: q.eq("user_id", user_id).order("created_at", desc=False),
        )

    def get_client_invitations(self) -> List[Dict[str, Any]]:
        """Unclaimed profiles; RLS only shows those issued to the caller's email or by the caller."""
        return self._select(
            "clients",
            "Client",
            lambda q: q.is_("user_id", "null").order("created_at", desc=True),
        )

    def claim_client(self, client_id: str, user_id: str) -> Dict[str, Any]:
        """Link an unclaimed profile to `user_id`. Already-claimed profiles match no row."""
        query = (
            self.supabase.table("clients")
            .update({"user_id": user_id})
            .eq("id", client_id)
            .is_("user_id", "null")
        )
        result = self._execute(query, "Client")
        if not result.data:
            raise NotFoundOrDenied("Client")
        return result.data[0]

    def create_client(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("clients", "Client", row)

    def update_client(self, client_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        return self._update("clients", "Client", client_id, changes)

    def delete_client(self, client_id: str) -> None:
        self._delete("clients", "Client", client_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def create_message(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("messages", "Message", row)

    def get_messages_for_caller(self) -> List[Dict[str, Any]]:
        return self._select("messages", "Message", lambda q: q.order("created_at", desc=True))

    def get_conversation(self, user_a: str, user_b: str) -> List[Dict[str, Any]]:
        participants = [user_a, user_b]
        return self._select(
            "messages",
            "Message",
            lambda q: q.in_("sender_id", participants)
            .in_("receiver_id", participants)
            .order("created_at", desc=False),
        )

    def mark_message_read(self, message_id: str) -> Dict[str, Any]:
        return self._update("messages", "Message", message_id, {"is_read": True})

    # ------------------------------------------------------------------
    # Device integrations
    # ------------------------------------------------------------------

    def create_device_integration(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("device_integrations", "Integration", row)

    def get_device_integrations_for_caller(self) -> List[Dict[str, Any]]:
        return self._select("device_integrations", "Integration")

    def get_device_integration(self, provider: str) -> Optional[Dict[str, Any]]:
        return self._get_one("device_integrations", "Integration", lambda q: q.eq("provider", provider))

    def update_device_integration(self, integration_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        return self._update("device_integrations", "Integration", integration_id, changes)

    def delete_device_integration(self, integration_id: str) -> None:
        self._delete("device_integrations", "Integration", integration_id)

    # ------------------------------------------------------------------
    # Weight and workout logs
    # ------------------------------------------------------------------

    def create_weight_log(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("weight_logs", "Weight log", row)

    def get_weight_logs(
        self,
        client_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        def build(q):
            q = q.eq("client_id", client_id)
            if start is not None:
                q = q.gte("logged_on", start.isoformat())
            if end is not None:
                q = q.lte("logged_on", end.isoformat())
            return q.order("logged_on", desc=True)
        return self._select("weight_logs", "Weight log", build)

    def create_workout_log(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("workout_logs", "Workout log", row)

    def get_workout_logs(self, client_id: str) -> List[Dict[str, Any]]:
        return self._select(
            "workout_logs",
            "Workout log",
            lambda q: q.eq("client_id", client_id).order("started_at", desc=True),
        )

    def update_workout_log(self, log_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        return self._update("workout_logs", "Workout log", log_id, changes)

    # ------------------------------------------------------------------
    # Nutrition plans
    # ------------------------------------------------------------------

    def create_nutrition_plan(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("nutrition_plans", "Nutrition plan", row)

    def get_nutrition_plans(self, client_id: str) -> List[Dict[str, Any]]:
        return self._select(
            "nutrition_plans",
            "Nutrition plan",
            lambda q: q.eq("client_id", client_id).order("start_date", desc=True),
        )

    def get_current_nutrition_plan(self, client_id: str) -> Optional[Dict[str, Any]]:
        return self._get_one(
            "nutrition_plans",
            "Nutrition plan",
            lambda q: q.eq("client_id", client_id).eq("is_active", True).order("start_date", desc=True),
        )

    # ------------------------------------------------------------------
    # Workout assignments
    # ------------------------------------------------------------------

    def create_workout_assignment(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("workout_assignments", "Workout assignment", row)

    def get_workout_assignments(self, client_id: str, upcoming: bool = False) -> List[Dict[str, Any]]:
        def build(q):
            q = q.eq("client_id", client_id)
            if upcoming:
                q = q.gte("scheduled_date", date.today().isoformat()).in_("status", ["assigned", "in_progress"])
            return q.order("scheduled_date", desc=not upcoming)
        return self._select("workout_assignments", "Workout assignment", build)

    def get_workout_assignment(self, assignment_id: str) -> Dict[str, Any]:
        return self._get_by_id("workout_assignments", "Workout assignment", assignment_id)

    def update_workout_assignment(self, assignment_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        return self._update("workout_assignments", "Workout assignment", assignment_id, changes)

    def delete_workout_assignment(self, assignment_id: str) -> None:
        self._delete("workout_assignments", "Workout assignment", assignment_id)

    # ------------------------------------------------------------------
    # Check-ins
    # ------------------------------------------------------------------

    def create_checkin(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return self._insert("checkins", "Check-in", row)

    def get_checkins(self, client_id: str, upcoming: bool = False) -> List[Dict[str, Any]]:
        def build(q):
            q = q.eq("client_id", client_id)
            if upcoming:
                now = datetime.now(timezone.utc).isoformat()
                q = q.gte("scheduled_for", now).in_("status", ["scheduled", "confirmed"])
            return q.order("scheduled_for", desc=not upcoming)
        return self._select("checkins", "Check-in", build)

    def update_checkin_status(self, checkin_id: str, status: str) -> Dict[str, Any]:
        return self._update("checkins", "Check-in", checkin_id, {"status": status})
