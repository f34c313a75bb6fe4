import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from app.adapters.storage.base import AbstractCampaignRepository
from app.api.dependencies import get_repository
from app.core.auth import PERMISSION_MANAGE_CONTACTS, Principal, require_permission
from app.core.errors import NotFoundError
from app.schemas.contact import (
    AddContactsRequest,
    AddContactsResponse,
    ContactListCreate,
    ContactListResponse,
    ContactResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["Contacts"])

ContactsPrincipal = Annotated[Principal, Depends(require_permission(PERMISSION_MANAGE_CONTACTS))]
Repository = Annotated[AbstractCampaignRepository, Depends(get_repository)]


async def _require_list(repository: AbstractCampaignRepository, principal: Principal, list_id: int):
    contact_list = await repository.get_contact_list(principal.organization_id, list_id)
    if contact_list is None:
        raise NotFoundError(
            code="contact_list_not_found",
            message="Contact list not found",
            details={"list_id": str(list_id)},
        )
    return contact_list


@router.get("/lists", response_model=List[ContactListResponse])
async def list_contact_lists(principal: ContactsPrincipal, repository: Repository) -> List[ContactListResponse]:
    lists = await repository.list_contact_lists(principal.organization_id)
    return [
        ContactListResponse(
            id=cl.id,
            name=cl.name,
            description=cl.description,
            contact_count=len(cl.member_ids),
            created_at=cl.created_at,
        )
        for cl in lists
    ]


@router.post("/lists", response_model=ContactListResponse, status_code=status.HTTP_201_CREATED)
async def create_contact_list(
    payload: ContactListCreate,
    principal: ContactsPrincipal,
    repository: Repository,
) -> ContactListResponse:
    contact_list = await repository.create_contact_list(
        principal.organization_id,
        name=payload.name,
        description=payload.description,
        created_by=principal.user_id,
    )
    logger.info("contact_list.created", extra={"list_id": contact_list.id, "user_id": principal.user_id})
    return ContactListResponse(
        id=contact_list.id,
        name=contact_list.name,
        description=contact_list.description,
        contact_count=0,
        created_at=contact_list.created_at,
    )


@router.get("/lists/{list_id}/contacts", response_model=List[ContactResponse])
async def list_contacts(
    list_id: int,
    principal: ContactsPrincipal,
    repository: Repository,
) -> List[ContactResponse]:
    await _require_list(repository, principal, list_id)
    contacts = await repository.list_contacts(principal.organization_id, list_id)
    return [ContactResponse.model_validate(c) for c in contacts]


@router.post(
    "/lists/{list_id}/contacts",
    response_model=AddContactsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_contacts(
    list_id: int,
    payload: AddContactsRequest,
    principal: ContactsPrincipal,
    repository: Repository,
) -> AddContactsResponse:
    """Add contacts to a list; addresses already in the list are skipped."""
    await _require_list(repository, principal, list_id)
    added, skipped = await repository.add_contacts(
        principal.organization_id,
        list_id,
        [c.model_dump() for c in payload.contacts],
    )
    logger.info(
        "contact_list.contacts_added",
        extra={"list_id": list_id, "added": added, "skipped": skipped},
    )
    return AddContactsResponse(added=added, skipped=skipped)
