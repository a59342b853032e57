"""Field event routes

POST /api/tasks/{task_id}/check-in: arrival at the site
POST /api/tasks/{task_id}/check-out: departure without completing
POST /api/tasks/{task_id}/checkout: complete the task, optionally with payment
POST /api/tasks/{task_id}/comments: comment with attachments

Responses for checkout conflicts are 409 with code TASK_ALREADY_COMPLETED.
"""

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from ..deps import get_checkout_service, get_field_event_service
from ..schemas import CheckoutBody, CommentBody, VisitBody, decode_attachments
from ..services.checkout_service import CheckoutRequest, CheckoutService, PaymentInput
from ..services.field_event_service import FieldEventService, FieldVisitRequest

router = APIRouter()


def _visit_request(task_id: str, body: VisitBody) -> FieldVisitRequest:
    return FieldVisitRequest(
        task_id=task_id,
        worker_id=body.worker_id,
        location=body.location,
        files=decode_attachments(body.attachments),
        note=body.note,
    )


@router.post("/api/tasks/{task_id}/check-in", status_code=201)
async def check_in(
    task_id: str,
    body: VisitBody,
    service: FieldEventService = Depends(get_field_event_service),
):
    result = await service.check_in(_visit_request(task_id, body))
    return JSONResponse(status_code=201, content=result.model_dump(mode="json"))


@router.post("/api/tasks/{task_id}/check-out", status_code=201)
async def check_out(
    task_id: str,
    body: VisitBody,
    service: FieldEventService = Depends(get_field_event_service),
):
    result = await service.check_out(_visit_request(task_id, body))
    return JSONResponse(status_code=201, content=result.model_dump(mode="json"))


@router.post("/api/tasks/{task_id}/checkout")
async def checkout(
    task_id: str,
    body: CheckoutBody,
    service: CheckoutService = Depends(get_checkout_service),
):
    payment = None
    if body.payment is not None:
        payment = PaymentInput(
            amount=body.payment.amount,
            currency=body.payment.currency,
            notes=body.payment.notes,
            invoice=body.payment.invoice.to_upload_file() if body.payment.invoice else None,
        )
    result = await service.checkout(
        CheckoutRequest(
            task_id=task_id,
            worker_id=body.worker_id,
            location=body.location,
            files=decode_attachments(body.attachments),
            note=body.note,
            payment=payment,
        )
    )
    return result.model_dump(mode="json")


@router.post("/api/tasks/{task_id}/comments", status_code=201)
async def add_comment(
    task_id: str,
    body: CommentBody,
    service: FieldEventService = Depends(get_field_event_service),
):
    event = await service.add_comment(
        task_id, body.actor_id, body.body, decode_attachments(body.attachments)
    )
    return JSONResponse(status_code=201, content=event.model_dump(mode="json"))
