"""Tests for TicketIssuer: issuance, check-in and the ticket state machine."""

import re
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from eventcore.errors import (
    AlreadyCancelled,
    AlreadyUsed,
    CapacityExceeded,
    CodeGenerationFailed,
    DuplicateTicket,
    EventNotOnSale,
    InvalidTransition,
    NotConfirmed,
    NotFound,
)
from eventcore.models.tickets import Ticket, TicketStatus
from eventcore.services.issuer import TicketIssuer, generate_qr_code


async def count_tickets(database, event_id):
    async with database.session_factory() as session:
        result = await session.execute(select(func.count(Ticket.id)).where(Ticket.event_id == event_id))
        return result.scalar_one()


class TestIssue:
    async def test_issue_confirms_and_snapshots_price(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        assert ticket.id is not None
        assert ticket.status == TicketStatus.CONFIRMED
        assert ticket.price == Decimal("25.00")
        assert ticket.confirmed_at is not None
        assert ticket.event_id == published_event.id
        assert ticket.user_id == attendee.id

    async def test_later_price_change_does_not_touch_issued_ticket(
        self, catalog, issuer, published_event, attendee
    ):
        ticket = await issuer.issue(published_event.id, attendee.id)
        await catalog.update_price(published_event.id, Decimal("30.00"))

        reloaded = await issuer.get(ticket.id)
        assert reloaded.price == Decimal("25.00")
        assert await catalog.price(published_event.id) == Decimal("30.00")

    async def test_free_event_ticket_has_no_price(self, catalog, issuer, event_attrs, attendee):
        event = await catalog.create(event_attrs(price=None, publish=True))
        ticket = await issuer.issue(event.id, attendee.id)
        assert ticket.price is None

    async def test_qr_code_format(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        assert re.fullmatch(r"TICKET-\d{13}-[0-9a-f]{16}", ticket.qr_code)

    async def test_generated_codes_are_distinct(self):
        codes = {generate_qr_code() for _ in range(1000)}
        assert len(codes) == 1000

    async def test_draft_event_is_not_on_sale(self, catalog, issuer, event_attrs, attendee):
        event = await catalog.create(event_attrs())
        with pytest.raises(EventNotOnSale):
            await issuer.issue(event.id, attendee.id)

    async def test_cancelled_event_is_not_on_sale(self, catalog, issuer, published_event, attendee):
        await catalog.cancel(published_event.id)
        with pytest.raises(EventNotOnSale):
            await issuer.issue(published_event.id, attendee.id)

    async def test_unknown_event(self, issuer, attendee):
        with pytest.raises(NotFound):
            await issuer.issue(999, attendee.id)

    async def test_unknown_user(self, issuer, published_event):
        with pytest.raises(NotFound):
            await issuer.issue(published_event.id, 999)

    async def test_capacity_is_enforced(self, database, catalog, issuer, event_attrs, make_user):
        event = await catalog.create(event_attrs(capacity=2, publish=True))
        for _ in range(2):
            await issuer.issue(event.id, (await make_user()).id)

        late = await make_user()
        with pytest.raises(CapacityExceeded):
            await issuer.issue(event.id, late.id)
        assert await count_tickets(database, event.id) == 2
        assert await catalog.current_capacity(event.id) == 0

    async def test_cancel_frees_a_seat(self, catalog, issuer, event_attrs, make_user):
        event = await catalog.create(event_attrs(capacity=2, publish=True))
        first = await issuer.issue(event.id, (await make_user()).id)
        await issuer.issue(event.id, (await make_user()).id)

        await issuer.cancel(first.id)
        assert await catalog.current_capacity(event.id) == 1
        replacement = await issuer.issue(event.id, (await make_user()).id)
        assert replacement.status == TicketStatus.CONFIRMED

    async def test_used_tickets_keep_holding_no_seat(self, catalog, issuer, event_attrs, make_user):
        event = await catalog.create(event_attrs(capacity=1, publish=True))
        ticket = await issuer.issue(event.id, (await make_user()).id)
        await issuer.check_in(ticket.qr_code)
        assert await catalog.current_capacity(event.id) == 1


class TestDuplicatePolicy:
    async def test_second_ticket_for_same_user_is_rejected(self, issuer, published_event, attendee):
        await issuer.issue(published_event.id, attendee.id)
        with pytest.raises(DuplicateTicket):
            await issuer.issue(published_event.id, attendee.id)

    async def test_reissue_after_cancel_is_allowed(self, issuer, published_event, attendee):
        first = await issuer.issue(published_event.id, attendee.id)
        await issuer.cancel(first.id)
        second = await issuer.issue(published_event.id, attendee.id)
        assert second.qr_code != first.qr_code

    async def test_multiple_tickets_when_policy_allows(self, database, catalog, published_event, attendee):
        issuer = TicketIssuer(database.session_factory, catalog, allow_multiple_per_user=True)
        await issuer.issue(published_event.id, attendee.id)
        await issuer.issue(published_event.id, attendee.id)
        assert len(await issuer.list_for_user(attendee.id)) == 2

    async def test_per_call_override_of_policy(self, database, catalog, published_event, attendee):
        issuer = TicketIssuer(database.session_factory, catalog, allow_multiple_per_user=True)
        await issuer.issue(published_event.id, attendee.id, allow_multiple=False)
        with pytest.raises(DuplicateTicket):
            await issuer.issue(published_event.id, attendee.id, allow_multiple=False)
        await issuer.issue(published_event.id, attendee.id)
        assert len(await issuer.list_for_user(attendee.id)) == 2


class TestCodeGeneration:
    async def test_collision_is_retried(self, database, catalog, published_event, make_user):
        codes = iter(["TICKET-1-dup", "TICKET-1-dup", "TICKET-2-fresh"])
        issuer = TicketIssuer(database.session_factory, catalog, code_factory=lambda: next(codes))

        first = await issuer.issue(published_event.id, (await make_user()).id)
        second = await issuer.issue(published_event.id, (await make_user()).id)
        assert first.qr_code == "TICKET-1-dup"
        assert second.qr_code == "TICKET-2-fresh"

    async def test_exhausted_attempts_fail_without_writing(self, database, catalog, published_event, make_user):
        issuer = TicketIssuer(
            database.session_factory, catalog, code_factory=lambda: "TICKET-constant", max_code_attempts=3
        )
        await issuer.issue(published_event.id, (await make_user()).id)

        with pytest.raises(CodeGenerationFailed) as exc_info:
            await issuer.issue(published_event.id, (await make_user()).id)
        assert exc_info.value.attempts == 3
        assert await count_tickets(database, published_event.id) == 1


class TestCheckIn:
    async def test_check_in_marks_ticket_used(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        used = await issuer.check_in(ticket.qr_code)
        assert used.id == ticket.id
        assert used.status == TicketStatus.USED
        assert used.used_at is not None

    async def test_second_check_in_fails(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        await issuer.check_in(ticket.qr_code)
        with pytest.raises(AlreadyUsed):
            await issuer.check_in(ticket.qr_code)
        assert (await issuer.get(ticket.id)).status == TicketStatus.USED

    async def test_unknown_code(self, issuer):
        with pytest.raises(NotFound):
            await issuer.check_in("TICKET-0-nothing")

    async def test_cancelled_ticket_cannot_check_in(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        await issuer.cancel(ticket.id)
        with pytest.raises(AlreadyCancelled):
            await issuer.check_in(ticket.qr_code)

    async def test_pending_ticket_cannot_check_in(self, database, catalog, published_event, attendee):
        issuer = TicketIssuer(database.session_factory, catalog, require_payment=True)
        ticket = await issuer.issue(published_event.id, attendee.id)
        assert ticket.status == TicketStatus.PENDING
        assert ticket.confirmed_at is None
        with pytest.raises(NotConfirmed):
            await issuer.check_in(ticket.qr_code)


class TestTransitions:
    async def test_confirm_then_check_in(self, database, catalog, published_event, attendee):
        issuer = TicketIssuer(database.session_factory, catalog, require_payment=True)
        ticket = await issuer.issue(published_event.id, attendee.id)

        confirmed = await issuer.confirm(ticket.id)
        assert confirmed.status == TicketStatus.CONFIRMED
        assert confirmed.confirmed_at is not None
        assert (await issuer.check_in(ticket.qr_code)).status == TicketStatus.USED

    async def test_free_event_skips_payment(self, database, catalog, event_attrs, attendee):
        event = await catalog.create(event_attrs(price=None, publish=True))
        issuer = TicketIssuer(database.session_factory, catalog, require_payment=True)
        ticket = await issuer.issue(event.id, attendee.id)
        assert ticket.status == TicketStatus.CONFIRMED

    async def test_pending_tickets_hold_seats(self, database, catalog, event_attrs, make_user):
        event = await catalog.create(event_attrs(capacity=1, publish=True))
        issuer = TicketIssuer(database.session_factory, catalog, require_payment=True)
        await issuer.issue(event.id, (await make_user()).id)
        with pytest.raises(CapacityExceeded):
            await issuer.issue(event.id, (await make_user()).id)

    async def test_confirm_requires_pending(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        with pytest.raises(InvalidTransition):
            await issuer.confirm(ticket.id)

    async def test_cancel_pending_ticket(self, database, catalog, published_event, attendee):
        issuer = TicketIssuer(database.session_factory, catalog, require_payment=True)
        ticket = await issuer.issue(published_event.id, attendee.id)
        cancelled = await issuer.cancel(ticket.id)
        assert cancelled.status == TicketStatus.CANCELLED
        assert cancelled.cancelled_at is not None

    async def test_used_ticket_cannot_be_cancelled(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        await issuer.check_in(ticket.qr_code)
        with pytest.raises(InvalidTransition) as exc_info:
            await issuer.cancel(ticket.id)
        assert exc_info.value.current == "USED"

    async def test_cancel_twice_is_invalid(self, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        await issuer.cancel(ticket.id)
        with pytest.raises(InvalidTransition):
            await issuer.cancel(ticket.id)

    async def test_cancelled_ticket_is_kept(self, database, issuer, published_event, attendee):
        ticket = await issuer.issue(published_event.id, attendee.id)
        await issuer.cancel(ticket.id)
        assert await count_tickets(database, published_event.id) == 1
        assert (await issuer.get(ticket.id)).status == TicketStatus.CANCELLED

    async def test_transitions_on_unknown_ticket(self, issuer):
        with pytest.raises(NotFound):
            await issuer.cancel(404)
        with pytest.raises(NotFound):
            await issuer.confirm(404)


class TestListing:
    async def test_list_for_event(self, issuer, published_event, make_user):
        for _ in range(3):
            await issuer.issue(published_event.id, (await make_user()).id)
        tickets = await issuer.list_for_event(published_event.id)
        assert len(tickets) == 3

    async def test_list_for_unknown_event(self, issuer):
        with pytest.raises(NotFound):
            await issuer.list_for_event(404)
