"""Repository for the Ticket aggregate."""

from ticketing.domain import ticketing
from ticketing.ticket.ticket import Ticket


@ticketing.repository(part_of=Ticket)
class TicketRepository:
    def find_by_qr_code(self, qr_code: str) -> Ticket | None:
        return self._dao.query.filter(qr_code=qr_code).all().first

    def find_by_order(self, order_id: str) -> list[Ticket]:
        return self._dao.query.filter(order_id=order_id).order_by("serial_no").limit(None).all().items
