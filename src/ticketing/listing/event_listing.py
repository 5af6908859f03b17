"""EventListing aggregate (CQRS): a scheduled event and its ticket tiers.

Only the parts of an event the ticketing core needs live here: who owns it,
when it runs, what tiers it sells, and its refund policy. Tier inventory is
tracked as an issued count that issuance claims and refunds release.
"""

from datetime import UTC, datetime, timedelta

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, ValueObject

from ticketing.domain import ticketing
from ticketing.listing.events import EventScheduled, RefundPolicyConfigured, TierInventoryReleased

MIN_REFUND_WINDOW_HOURS = 1
MAX_REFUND_WINDOW_HOURS = 168
DEFAULT_REFUND_WINDOW_HOURS = 24


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ticketing.value_object(part_of="EventListing")
class RefundPolicy:
    """Per-event refund settings.

    Refunds are always whole-order for the order total. ``refund_fees`` is
    the organizer's stated intent shown to buyers; it does not change the
    amount sent to the processor.
    """

    allow_refunds = Boolean(default=True)
    refund_window_hours = Integer(
        default=DEFAULT_REFUND_WINDOW_HOURS,
        min_value=MIN_REFUND_WINDOW_HOURS,
        max_value=MAX_REFUND_WINDOW_HOURS,
    )
    auto_approve_enabled = Boolean(default=False)
    refund_fees = Boolean(default=True)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ticketing.entity(part_of="EventListing")
class TicketTier:
    """A priced class of admission, e.g. "General" or "VIP"."""

    name = String(required=True, max_length=100)
    badge_label = String(max_length=50)
    price_cents = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=0)
    issued_count = Integer(default=0)

    @property
    def available(self) -> int:
        return self.quantity - self.issued_count


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ticketing.aggregate
class EventListing:
    title = String(required=True, max_length=200)
    owner_id = Identifier(required=True)
    org_id = Identifier()
    start_at = DateTime(required=True)
    end_at = DateTime()
    refund_policy = ValueObject(RefundPolicy)
    tiers = HasMany(TicketTier)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def end_must_follow_start(self):
        if self.end_at and self.start_at and self.end_at < self.start_at:
            raise ValidationError({"end_at": ["Event cannot end before it starts"]})

    @invariant.post
    def tier_inventory_within_bounds(self):
        for tier in self.tiers:
            if tier.issued_count < 0 or tier.issued_count > tier.quantity:
                raise ValidationError({"tiers": [f"Tier {tier.name} issued count out of range"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def schedule(cls, title, owner_id, start_at, end_at=None, org_id=None, tiers=None, refund_policy=None):
        """Schedule a new event. ``tiers`` is a list of dicts."""
        now = datetime.now(UTC)
        listing = cls(
            title=title,
            owner_id=owner_id,
            org_id=org_id,
            start_at=start_at,
            end_at=end_at,
            refund_policy=refund_policy or RefundPolicy(),
            created_at=now,
            updated_at=now,
        )

        for tier in tiers or []:
            listing.add_tiers(
                TicketTier(
                    name=tier["name"],
                    badge_label=tier.get("badge_label"),
                    price_cents=tier["price_cents"],
                    quantity=tier["quantity"],
                    issued_count=0,
                )
            )

        listing.raise_(
            EventScheduled(
                event_id=str(listing.id),
                title=title,
                owner_id=str(owner_id),
                org_id=str(org_id) if org_id else None,
                start_at=start_at,
                end_at=end_at,
                tier_count=len(listing.tiers),
            )
        )
        return listing

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def tier(self, tier_id):
        """Return the tier with ``tier_id``, or None."""
        return next((t for t in self.tiers if str(t.id) == str(tier_id)), None)

    def has_ended(self, now=None) -> bool:
        now = now or datetime.now(UTC)
        return self.end_at is not None and self.end_at < now

    def refund_deadline(self) -> datetime:
        """Last moment a refund may be requested."""
        return self.start_at - timedelta(hours=self.refund_policy.refund_window_hours)

    # -------------------------------------------------------------------
    # Refund policy
    # -------------------------------------------------------------------
    def configure_refund_policy(
        self,
        configured_by,
        allow_refunds=True,
        refund_window_hours=DEFAULT_REFUND_WINDOW_HOURS,
        auto_approve_enabled=False,
        refund_fees=True,
    ):
        if not MIN_REFUND_WINDOW_HOURS <= refund_window_hours <= MAX_REFUND_WINDOW_HOURS:
            raise ValidationError(
                {
                    "refund_window_hours": [
                        f"Refund window must be between {MIN_REFUND_WINDOW_HOURS} "
                        f"and {MAX_REFUND_WINDOW_HOURS} hours"
                    ]
                }
            )

        self.refund_policy = RefundPolicy(
            allow_refunds=allow_refunds,
            refund_window_hours=refund_window_hours,
            auto_approve_enabled=auto_approve_enabled,
            refund_fees=refund_fees,
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(
            RefundPolicyConfigured(
                event_id=str(self.id),
                allow_refunds=allow_refunds,
                refund_window_hours=refund_window_hours,
                auto_approve_enabled=auto_approve_enabled,
                refund_fees=refund_fees,
                configured_by=str(configured_by),
            )
        )

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    def claim_inventory(self, tier_id, quantity):
        tier = self._require_tier(tier_id)
        if quantity > tier.available:
            raise ValidationError({"tiers": [f"Only {tier.available} tickets left in {tier.name}"]})
        tier.issued_count = tier.issued_count + quantity
        self.updated_at = datetime.now(UTC)

    def releasable(self, tier_id, quantity) -> int:
        """How many of ``quantity`` tickets release_inventory would put back."""
        return min(quantity, self._require_tier(tier_id).issued_count)

    def release_inventory(self, tier_id, quantity):
        """Put refunded tickets back on sale. Never drops below zero issued."""
        tier = self._require_tier(tier_id)
        released = self.releasable(tier_id, quantity)
        if released == 0:
            return 0

        tier.issued_count = tier.issued_count - released
        self.updated_at = datetime.now(UTC)

        self.raise_(
            TierInventoryReleased(
                event_id=str(self.id),
                tier_id=str(tier.id),
                quantity=released,
                issued_count=tier.issued_count,
            )
        )
        return released

    def _require_tier(self, tier_id):
        tier = self.tier(tier_id)
        if tier is None:
            raise ValidationError({"tier_id": [f"Unknown tier {tier_id}"]})
        return tier
