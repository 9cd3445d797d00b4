"""
Provider webhook endpoint: POST /payments/webhook (+ CORS preflight).
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.schemas.payments import WebhookAck
from app.services.payments.errors import DeadlineExceededError, WebhookError
from app.services.payments.service import PaymentWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def get_webhook_service() -> PaymentWebhookService:
    return PaymentWebhookService(settings=settings)


def _error(exc: WebhookError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=CORS_HEADERS)


@router.options("/webhook")
def webhook_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    service: PaymentWebhookService = Depends(get_webhook_service),
):
    raw_body = await request.body()
    signature = request.headers.get(settings.payment_signature_header)
    try:
        result = await asyncio.wait_for(
            run_in_threadpool(service.handle, raw_body, signature),
            timeout=settings.webhook_deadline_seconds,
        )
    except asyncio.TimeoutError:
        # The worker thread may still commit; redelivery is safe under the status guard.
        logger.error("payment_webhook_deadline_exceeded", extra={"path": request.url.path})
        return _error(DeadlineExceededError("Processing deadline exceeded"))
    except WebhookError as e:
        log = logger.warning if e.status_code < 500 else logger.error
        log(
            "payment_webhook_rejected",
            extra={"status_code": e.status_code, "error": e.message, "path": request.url.path},
        )
        return _error(e)

    return JSONResponse(WebhookAck(**result.to_response()).model_dump(), headers=CORS_HEADERS)
