from fastapi import APIRouter, Depends, Query
from fitcoach.core.dependencies import get_current_caller, get_gateway, require_role
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity, Role
from fitcoach.modules.nutrition.schemas import NutritionPlanCreate, NutritionPlanResponse
from fitcoach.modules.nutrition.service import NutritionService
from typing import List, Optional, Union

router = APIRouter(prefix="/nutrition-plans", tags=["nutrition"])


def get_nutrition_service(gateway: TenantGateway = Depends(get_gateway)) -> NutritionService:
    return NutritionService(gateway)


@router.post("", response_model=NutritionPlanResponse, status_code=201)
def create_nutrition_plan(
    data: NutritionPlanCreate,
    caller: CallerIdentity = Depends(require_role(Role.COACH)),
    service: NutritionService = Depends(get_nutrition_service)
):
    """Assign a nutrition plan to a managed client (coaches only)"""
    return service.create_plan(data, caller)


@router.get("", response_model=Union[List[NutritionPlanResponse], Optional[NutritionPlanResponse]])
def list_nutrition_plans(
    client_id: Optional[str] = Query(None, alias="clientId"),
    current: bool = False,
    caller: CallerIdentity = Depends(get_current_caller),
    service: NutritionService = Depends(get_nutrition_service)
):
    """All plans for a client, or only the active one with current=true (null when none)"""
    if current:
        return service.get_current_plan(caller, client_id)
    return service.list_plans(caller, client_id)
