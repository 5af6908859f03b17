"""Mixed ticketing workload scenario.

Combines the door and refund journeys with weights that model an event
night: mostly admissions, with refunds trickling in alongside. This is
the recommended scenario for a load baseline.
"""

from locust import HttpUser, between

from loadtests.scenarios.door import DoorNightJourney
from loadtests.scenarios.refunds import (
    AutoApprovedRequestJourney,
    OrganizerRefundJourney,
    ReviewedRequestJourney,
)


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload.

    Door (70%): buy, pay and scan in one journey, with rescans.

    Refunds (30%):
    - Buyer requests reviewed by the organizer: most common
    - Organizer refunds: cancellations and goodwill
    - Auto-approved requests: events that allow it
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        DoorNightJourney: 14,
        ReviewedRequestJourney: 3,
        OrganizerRefundJourney: 2,
        AutoApprovedRequestJourney: 1,
    }
