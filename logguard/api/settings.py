from typing import List

from fastapi import APIRouter, Depends, status

from logguard.api.deps import get_container
from logguard.core.container import ServiceContainer
from logguard.schemas.config import AppConfig, NotificationRule, NotificationRuleCreate

router = APIRouter()


@router.get("/settings", response_model=AppConfig, tags=["Settings"])
def read_settings(container: ServiceContainer = Depends(get_container)):
    return container.config()


@router.put("/settings", response_model=AppConfig, tags=["Settings"])
def save_settings(config: AppConfig, container: ServiceContainer = Depends(get_container)):
    """Persist the configuration. A running monitor picks it up on its next start."""
    return container.config_service.save_config(config)


@router.post("/settings/reset", response_model=AppConfig, tags=["Settings"])
def reset_settings(container: ServiceContainer = Depends(get_container)):
    return container.config_service.reset_config()


@router.get("/rules", response_model=List[NotificationRule], tags=["Rules"])
def list_rules(container: ServiceContainer = Depends(get_container)):
    return container.config_service.list_rules()


@router.post("/rules", response_model=NotificationRule, status_code=status.HTTP_201_CREATED, tags=["Rules"])
def create_rule(rule: NotificationRuleCreate, container: ServiceContainer = Depends(get_container)):
    return container.config_service.add_rule(rule)


@router.put("/rules/{rule_id}", response_model=NotificationRule, tags=["Rules"])
def update_rule(rule_id: str, rule: NotificationRuleCreate, container: ServiceContainer = Depends(get_container)):
    return container.config_service.update_rule(rule_id, rule)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Rules"])
def delete_rule(rule_id: str, container: ServiceContainer = Depends(get_container)):
    container.config_service.delete_rule(rule_id)
