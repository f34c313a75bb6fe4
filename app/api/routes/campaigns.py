import asyncio
import logging
from typing import Annotated, List

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.adapters.rate_limit.base import RateLimitDecision
from app.adapters.storage.base import AbstractCampaignRepository
from app.adapters.storage.models import Campaign, Recipient
from app.api.dependencies import (
    get_dispatch_registry,
    get_email_service,
    get_repository,
)
from app.core.auth import PERMISSION_SEND_CAMPAIGNS, Principal, require_permission, verify_api_key
from app.core.errors import AppError, NotFoundError, ValidationAppError
from app.core.rate_limit import enforce_email_rate_limit
from app.schemas.campaign import (
    CampaignCreate,
    CampaignCreatedResponse,
    CampaignResponse,
    CancelDispatchResponse,
    RateStatusResponse,
    SendCampaignRequest,
    SendCampaignResponse,
    TestEmailRequest,
    TestEmailResponse,
)
from app.services.dispatch_registry import DispatchRegistry
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])

SenderPrincipal = Annotated[Principal, Depends(require_permission(PERMISSION_SEND_CAMPAIGNS))]
Repository = Annotated[AbstractCampaignRepository, Depends(get_repository)]
Service = Annotated[EmailService, Depends(get_email_service)]
Registry = Annotated[DispatchRegistry, Depends(get_dispatch_registry)]


def _to_response(campaign: Campaign, registry: DispatchRegistry) -> CampaignResponse:
    response = CampaignResponse.model_validate(campaign)
    response.dispatch_running = registry.is_running(campaign.id)
    return response


async def _get_campaign_or_404(
    repository: AbstractCampaignRepository,
    campaign_id: int,
    principal: Principal,
) -> Campaign:
    campaign = await repository.get_campaign(campaign_id, principal.organization_id)
    if campaign is None:
        raise NotFoundError(
            code="campaign_not_found",
            message="Campaign not found",
            details={"campaign_id": str(campaign_id)},
        )
    return campaign


async def _run_dispatch(
    service: EmailService,
    registry: DispatchRegistry,
    principal: Principal,
    campaign_id: int,
    recipients: List[Recipient],
    cancel_event: asyncio.Event,
    resume: bool,
) -> None:
    """Background task body: dispatch and always release the registry slot."""
    try:
        await service.dispatch_campaign(
            principal.user_id,
            campaign_id,
            recipients,
            organization_id=principal.organization_id,
            cancel_event=cancel_event,
            resume=resume,
        )
    except AppError as exc:
        logger.error(
            "dispatch.aborted",
            extra={"campaign_id": campaign_id, "error_code": exc.code, "error_message": exc.message},
        )
    finally:
        registry.finish(campaign_id)


@router.get("/rate-status", response_model=RateStatusResponse)
async def get_rate_status(
    principal: Annotated[Principal, Depends(verify_api_key)],
    service: Service,
) -> RateStatusResponse:
    """Report the caller's email send window without consuming quota."""
    decision = service.get_rate_status(principal.user_id)
    return RateStatusResponse(
        allowed=decision.allowed,
        limit=decision.limit,
        remaining=decision.remaining,
        reset_in_seconds=decision.retry_after_seconds,
    )


@router.post("/test-email", response_model=TestEmailResponse)
async def send_test_email(
    payload: TestEmailRequest,
    principal: SenderPrincipal,
    _rate: Annotated[RateLimitDecision, Depends(enforce_email_rate_limit)],
    service: Service,
) -> TestEmailResponse:
    """Send one email to an arbitrary address.

    Raises:
        RateLimitExceededError: 429 with Retry-After when the window is spent.
        SendFailureError: 502 when the transport rejects the message.
    """
    result = await service.send_email(
        principal.user_id,
        str(payload.to),
        payload.subject,
        payload.content,
        organization_id=principal.organization_id,
    )
    return TestEmailResponse(
        message_id=result.message_id,
        remaining=service.get_rate_status(principal.user_id).remaining,
    )


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    principal: SenderPrincipal,
    repository: Repository,
    registry: Registry,
) -> List[CampaignResponse]:
    campaigns = await repository.list_campaigns(principal.organization_id)
    return [_to_response(c, registry) for c in campaigns]


@router.post("", response_model=CampaignCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    payload: CampaignCreate,
    principal: SenderPrincipal,
    repository: Repository,
) -> CampaignCreatedResponse:
    campaign = await repository.create_campaign(
        principal.organization_id,
        name=payload.name,
        subject=payload.subject,
        content=payload.content,
        created_by=principal.user_id,
    )
    logger.info("campaign.created", extra={"campaign_id": campaign.id, "user_id": principal.user_id})
    return CampaignCreatedResponse(id=campaign.id)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: int,
    principal: SenderPrincipal,
    repository: Repository,
    registry: Registry,
) -> CampaignResponse:
    campaign = await _get_campaign_or_404(repository, campaign_id, principal)
    return _to_response(campaign, registry)


@router.post(
    "/{campaign_id}/send",
    response_model=SendCampaignResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def send_campaign(
    campaign_id: int,
    payload: SendCampaignRequest,
    background_tasks: BackgroundTasks,
    principal: SenderPrincipal,
    _rate: Annotated[RateLimitDecision, Depends(enforce_email_rate_limit)],
    repository: Repository,
    service: Service,
    registry: Registry,
) -> SendCampaignResponse:
    """Start dispatching a campaign to the active contacts of a list.

    The dispatch runs after the response is sent; progress is visible through
    ``GET /campaigns/{campaign_id}`` and it can be stopped with ``/cancel``.
    """
    await _get_campaign_or_404(repository, campaign_id, principal)

    contact_list = await repository.get_contact_list(principal.organization_id, payload.list_id)
    if contact_list is None:
        raise NotFoundError(
            code="contact_list_not_found",
            message="Contact list not found",
            details={"list_id": str(payload.list_id)},
        )

    recipients = await repository.get_active_recipients(principal.organization_id, payload.list_id)
    if not recipients:
        raise ValidationAppError(
            code="empty_recipient_list",
            message="No active contacts found in the selected list",
            details={"list_id": str(payload.list_id)},
        )

    cancel_event = registry.start(campaign_id)
    background_tasks.add_task(
        _run_dispatch,
        service,
        registry,
        principal,
        campaign_id,
        recipients,
        cancel_event,
        payload.resume,
    )

    logger.info(
        "campaign.dispatch_scheduled",
        extra={
            "campaign_id": campaign_id,
            "user_id": principal.user_id,
            "total_recipients": len(recipients),
            "resume": payload.resume,
        },
    )
    return SendCampaignResponse(campaign_id=campaign_id, total_recipients=len(recipients))


@router.post(
    "/{campaign_id}/cancel",
    response_model=CancelDispatchResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def cancel_campaign(
    campaign_id: int,
    principal: SenderPrincipal,
    repository: Repository,
    registry: Registry,
) -> CancelDispatchResponse:
    """Stop a running dispatch at its next pause; progress is checkpointed."""
    await _get_campaign_or_404(repository, campaign_id, principal)

    if not registry.cancel(campaign_id):
        raise NotFoundError(
            code="dispatch_not_running",
            message="Campaign is not being sent",
            details={"campaign_id": str(campaign_id)},
        )
    return CancelDispatchResponse(campaign_id=campaign_id)
