"""Event management: commands and handlers."""

import json

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ticketing.access.policy import authorize_refund_manager
from ticketing.domain import ticketing
from ticketing.listing.event_listing import DEFAULT_REFUND_WINDOW_HOURS, EventListing


@ticketing.command(part_of="EventListing")
class ScheduleEvent:
    title: String(required=True, max_length=200)
    owner_id: Identifier(required=True)
    org_id: Identifier()
    start_at: DateTime(required=True)
    end_at: DateTime()
    tiers: Text()  # JSON: list of {name, badge_label, price_cents, quantity}


@ticketing.command(part_of="EventListing")
class ConfigureRefundPolicy:
    event_id: Identifier(required=True)
    configured_by: Identifier(required=True)
    allow_refunds: Boolean(default=True)
    refund_window_hours: Integer(default=DEFAULT_REFUND_WINDOW_HOURS)
    auto_approve_enabled: Boolean(default=False)
    refund_fees: Boolean(default=True)


@ticketing.command_handler(part_of=EventListing)
class ManageEventHandler:
    @handle(ScheduleEvent)
    def schedule_event(self, command):
        tiers = json.loads(command.tiers) if command.tiers else []

        listing = EventListing.schedule(
            title=command.title,
            owner_id=command.owner_id,
            org_id=command.org_id,
            start_at=command.start_at,
            end_at=command.end_at,
            tiers=tiers,
        )
        current_domain.repository_for(EventListing).add(listing)
        return str(listing.id)

    @handle(ConfigureRefundPolicy)
    def configure_refund_policy(self, command):
        repo = current_domain.repository_for(EventListing)
        listing = repo.get(command.event_id)

        # Same people who may refund may set the rules for refunding
        authorize_refund_manager(command.configured_by, listing)

        listing.configure_refund_policy(
            configured_by=command.configured_by,
            allow_refunds=command.allow_refunds,
            refund_window_hours=command.refund_window_hours,
            auto_approve_enabled=command.auto_approve_enabled,
            refund_fees=command.refund_fees,
        )
        repo.add(listing)
