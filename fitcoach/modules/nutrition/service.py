from fitcoach.core.audit import enforce_audit_fields, stamp_for_table
from fitcoach.core.errors import ValidationFailed
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.clients.service import resolve_client_id
from fitcoach.modules.nutrition.schemas import NutritionPlanCreate, NutritionPlanResponse
from typing import List, Optional


class NutritionService:
    def __init__(self, gateway: TenantGateway):
        self.gateway = gateway

    def create_plan(self, data: NutritionPlanCreate, caller: CallerIdentity) -> NutritionPlanResponse:
        if data.end_date and data.end_date < data.start_date:
            raise ValidationFailed("endDate must not be before startDate")
        row = enforce_audit_fields(data.model_dump(), caller, ("coach_id",))
        row = stamp_for_table("nutrition_plans", row, caller)
        return NutritionPlanResponse.model_validate(self.gateway.create_nutrition_plan(row))

    def list_plans(self, caller: CallerIdentity, client_id: Optional[str] = None) -> List[NutritionPlanResponse]:
        resolved = resolve_client_id(self.gateway, caller, client_id)
        return [NutritionPlanResponse.model_validate(r) for r in self.gateway.get_nutrition_plans(resolved)]

    def get_current_plan(self, caller: CallerIdentity, client_id: Optional[str] = None) -> Optional[NutritionPlanResponse]:
        resolved = resolve_client_id(self.gateway, caller, client_id)
        row = self.gateway.get_current_nutrition_plan(resolved)
        return NutritionPlanResponse.model_validate(row) if row else None
