"""Dependency injection -- app.state objects and services via FastAPI Depends

Everything on app.state is created in the lifespan and cleaned up there.
"""

from fastapi import Depends, Request
from fieldops.core.config import FieldOpsSettings
from fieldops.core.store import StoreGroup
from fieldops.core.store.protocols import AttachmentGateway

from .services.checkout_service import CheckoutService
from .services.field_event_service import FieldEventService
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    return request.app.state.store_group


def get_settings(request: Request) -> FieldOpsSettings:
    return request.app.state.settings


def get_attachment_gateway(request: Request) -> AttachmentGateway:
    return request.app.state.attachment_gateway


def get_task_service(
    store_group: StoreGroup = Depends(get_store_group),
    settings: FieldOpsSettings = Depends(get_settings),
) -> TaskService:
    return TaskService(store_group, settings)


def get_field_event_service(
    store_group: StoreGroup = Depends(get_store_group),
    gateway: AttachmentGateway = Depends(get_attachment_gateway),
    settings: FieldOpsSettings = Depends(get_settings),
) -> FieldEventService:
    return FieldEventService(store_group, gateway, settings)


def get_checkout_service(
    store_group: StoreGroup = Depends(get_store_group),
    gateway: AttachmentGateway = Depends(get_attachment_gateway),
    settings: FieldOpsSettings = Depends(get_settings),
) -> CheckoutService:
    return CheckoutService(store_group, gateway, settings)
