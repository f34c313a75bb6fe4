"""Tests for the in-memory campaign repository."""

from datetime import timedelta

import pytest

from app.adapters.storage.in_memory import InMemoryCampaignRepository
from app.adapters.storage.models import DispatchCheckpoint, DispatchResult, EmailEvent, utcnow


@pytest.fixture
def repo() -> InMemoryCampaignRepository:
    return InMemoryCampaignRepository()


@pytest.mark.asyncio
async def test_add_contacts_normalizes_and_skips_duplicates(repo) -> None:
    contact_list = await repo.create_contact_list(1, name="Newsletter")

    added, skipped = await repo.add_contacts(
        1,
        contact_list.id,
        [
            {"email": "Ada@Example.com", "first_name": "Ada", "last_name": "Lovelace"},
            {"email": "ada@example.com"},
            {"email": "bob@example.com"},
        ],
    )

    assert (added, skipped) == (2, 1)
    contacts = await repo.list_contacts(1, contact_list.id)
    assert [c.email for c in contacts] == ["ada@example.com", "bob@example.com"]
    assert contacts[0].display_name == "Ada Lovelace"


@pytest.mark.asyncio
async def test_active_recipients_exclude_unsubscribed_and_keep_order(repo) -> None:
    contact_list = await repo.create_contact_list(1, name="Newsletter")
    await repo.add_contacts(
        1,
        contact_list.id,
        [
            {"email": "c@example.com"},
            {"email": "gone@example.com", "status": "unsubscribed"},
            {"email": "a@example.com"},
        ],
    )

    recipients = await repo.get_active_recipients(1, contact_list.id)

    assert [r.address for r in recipients] == ["c@example.com", "a@example.com"]
    assert all(r.contact_id is not None for r in recipients)


@pytest.mark.asyncio
async def test_lists_are_scoped_to_organization(repo) -> None:
    contact_list = await repo.create_contact_list(1, name="Org one")

    assert await repo.get_contact_list(2, contact_list.id) is None
    assert await repo.list_contact_lists(2) == []
    assert await repo.list_contacts(2, contact_list.id) == []


@pytest.mark.asyncio
async def test_campaign_lookup_respects_organization(repo) -> None:
    campaign = await repo.create_campaign(1, name="Launch", subject="Hi", content="x")

    assert (await repo.get_campaign(campaign.id)).name == "Launch"
    assert (await repo.get_campaign(campaign.id, 1)).status == "draft"
    assert await repo.get_campaign(campaign.id, 2) is None
    assert await repo.get_campaign(999) is None


@pytest.mark.asyncio
async def test_dispatch_lifecycle_updates_campaign(repo) -> None:
    campaign = await repo.create_campaign(1, name="Launch", subject="Hi", content="x")

    await repo.mark_campaign_sending(campaign.id, 3)
    assert campaign.status == "sending"
    assert campaign.total_recipients == 3

    await repo.record_dispatch_result(
        campaign.id, DispatchResult(sent_count=2, failed_count=1, total_recipients=3)
    )

    assert campaign.status == "sent"
    assert (campaign.send_count, campaign.failed_count) == (2, 1)
    assert campaign.sent_at is not None


@pytest.mark.asyncio
async def test_cancelled_dispatch_marks_campaign_cancelled(repo) -> None:
    campaign = await repo.create_campaign(1, name="Launch", subject="Hi", content="x")

    await repo.record_dispatch_result(
        campaign.id,
        DispatchResult(sent_count=1, failed_count=0, total_recipients=3, cancelled=True),
    )

    assert campaign.status == "cancelled"
    assert campaign.sent_at is None


@pytest.mark.asyncio
async def test_checkpoint_roundtrip_and_clear(repo) -> None:
    checkpoint = DispatchCheckpoint(
        campaign_id=5, cursor=2, sent_count=2, failed_count=0, total_recipients=4
    )

    await repo.save_checkpoint(checkpoint)
    assert await repo.get_checkpoint(5) == checkpoint

    await repo.clear_checkpoint(5)
    assert await repo.get_checkpoint(5) is None


@pytest.mark.asyncio
async def test_overview_aggregates_organization_data(repo) -> None:
    contact_list = await repo.create_contact_list(1, name="Newsletter")
    await repo.add_contacts(
        1,
        contact_list.id,
        [
            {"email": "a@example.com"},
            {"email": "b@example.com", "status": "bounced"},
            {"email": "c@example.com", "status": "unsubscribed"},
        ],
    )
    campaign = await repo.create_campaign(1, name="Launch", subject="Hi", content="x")
    await repo.record_dispatch_result(
        campaign.id, DispatchResult(sent_count=3, failed_count=1, total_recipients=4)
    )
    await repo.log_email_event(EmailEvent(organization_id=1, recipient="a@example.com", event_type="sent"))
    await repo.log_email_event(EmailEvent(organization_id=2, recipient="z@example.com", event_type="sent"))

    overview = await repo.overview(1)

    assert overview["contacts"] == {"total": 3, "active": 1, "unsubscribed": 1, "bounced": 1}
    assert overview["campaigns"]["sent"] == 1
    assert overview["campaigns"]["total_sent"] == 3
    assert overview["delivery_rate"] == 75.0
    assert [e["recipient"] for e in overview["recent_activity"]] == ["a@example.com"]


@pytest.mark.asyncio
async def test_overview_of_empty_organization(repo) -> None:
    overview = await repo.overview(42)

    assert overview["delivery_rate"] == 0.0
    assert overview["recent_activity"] == []


@pytest.mark.asyncio
async def test_event_log_is_bounded() -> None:
    repo = InMemoryCampaignRepository(max_events=3)
    for i in range(5):
        await repo.log_email_event(
            EmailEvent(organization_id=1, recipient=f"u{i}@example.com", event_type="sent")
        )

    overview = await repo.overview(1)

    assert len(overview["recent_activity"]) == 3


@pytest.mark.asyncio
async def test_add_contacts_updates_names_of_existing_contact(repo) -> None:
    first = await repo.create_contact_list(1, name="Newsletter")
    second = await repo.create_contact_list(1, name="Customers")
    await repo.add_contacts(1, first.id, [{"email": "ada@example.com", "first_name": "Ada", "last_name": "Byron"}])

    await repo.add_contacts(1, second.id, [{"email": "ada@example.com", "last_name": "Lovelace"}])

    contact = (await repo.list_contacts(1, first.id))[0]
    assert (contact.first_name, contact.last_name) == ("Ada", "Lovelace")
    assert [c.id for c in await repo.list_contacts(1, second.id)] == [contact.id]


@pytest.mark.asyncio
async def test_deliverability_groups_attempts_by_domain(repo) -> None:
    events = [
        EmailEvent(organization_id=1, recipient="a@example.com", event_type="sent"),
        EmailEvent(organization_id=1, recipient="b@example.com", event_type="sent"),
        EmailEvent(
            organization_id=1,
            recipient="c@example.com",
            event_type="failed",
            metadata={"reason": "550 mailbox unavailable", "retryable": False},
        ),
        EmailEvent(
            organization_id=1,
            recipient="d@Mail.org",
            event_type="failed",
            metadata={"reason": "451 try later", "retryable": True},
        ),
        EmailEvent(organization_id=1, recipient="x@example.com", event_type="opened"),
        EmailEvent(organization_id=2, recipient="z@example.com", event_type="sent"),
    ]
    for event in events:
        await repo.log_email_event(event)

    rows = await repo.deliverability(1)

    assert rows == [
        {
            "domain": "example.com",
            "sent": 3,
            "delivered": 2,
            "failed": 0,
            "bounced": 1,
            "deliverability_rate": 66.67,
        },
        {
            "domain": "mail.org",
            "sent": 1,
            "delivered": 0,
            "failed": 1,
            "bounced": 0,
            "deliverability_rate": 0.0,
        },
    ]


@pytest.mark.asyncio
async def test_deliverability_ignores_events_outside_window(repo) -> None:
    old = utcnow() - timedelta(days=31)
    await repo.log_email_event(
        EmailEvent(organization_id=1, recipient="a@example.com", event_type="sent", timestamp=old)
    )
    await repo.log_email_event(EmailEvent(organization_id=1, recipient="b@example.com", event_type="sent"))

    assert (await repo.deliverability(1))[0]["sent"] == 1
    assert (await repo.deliverability(1, days=60))[0]["sent"] == 2
