# khe_api/routes/ticket_routes.py
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from khe_api.auth import require_user
from khe_api.data_client.models import TicketIn, TicketPatch
from khe_api.data_client.tables import ROLE_ADMIN, ROLE_STAFF, Ticket, User
from khe_api.data_client.ticket_client import ticket_to_dict
from khe_api.db import get_session
from khe_api.notify_client import push_quietly
from khe_api.realtime import hub

logger = logging.getLogger("khe-api")

router = APIRouter(prefix="/tickets", tags=["tickets"])

NAMESPACE = "/tickets"

_staff_only = require_user(ROLE_ADMIN, ROLE_STAFF)


def _ticket_or_404(session: Session, ticket_id: str) -> Ticket:
    ticket = session.get(Ticket, ticket_id)
    if ticket is None:
        raise HTTPException(status_code=404, detail={"message": "Ticket not found", "_id": ticket_id})
    return ticket


@router.post("")
def create_ticket(req: TicketIn, background: BackgroundTasks, session: Session = Depends(get_session)):
    """Anyone can open a ticket; staff devices get a push notification."""
    ticket = Ticket(**req.model_dump())
    session.add(ticket)
    session.commit()

    response = ticket_to_dict(ticket)
    logger.info(f"[Tickets] Opened {ticket.id}")
    hub.emit(NAMESPACE, "create", response)
    background.add_task(push_quietly, NAMESPACE, "create", response)
    return response


@router.get("")
def list_tickets(staff: User = Depends(_staff_only), session: Session = Depends(get_session)):
    tickets = session.scalars(select(Ticket).order_by(Ticket.created)).all()
    return {"tickets": [ticket_to_dict(t) for t in tickets]}


@router.get("/{ticket_id}")
def get_ticket(ticket_id: str, staff: User = Depends(_staff_only), session: Session = Depends(get_session)):
    return ticket_to_dict(_ticket_or_404(session, ticket_id))


@router.patch("/{ticket_id}")
def patch_ticket(
    ticket_id: str,
    req: TicketPatch,
    staff: User = Depends(_staff_only),
    session: Session = Depends(get_session),
):
    """Whoever touches a ticket becomes its worker."""
    ticket = _ticket_or_404(session, ticket_id)
    ticket.worker = staff.email
    if req.open is not None:
        ticket.open = req.open
    if req.in_progress is not None:
        ticket.in_progress = req.in_progress
    session.commit()

    response = ticket_to_dict(ticket)
    hub.emit(NAMESPACE, "update", response)
    return response


@router.delete("/{ticket_id}")
def delete_ticket(ticket_id: str, staff: User = Depends(_staff_only), session: Session = Depends(get_session)):
    ticket = _ticket_or_404(session, ticket_id)
    session.delete(ticket)
    session.commit()

    response = {"_id": ticket_id}
    hub.emit(NAMESPACE, "delete", response)
    return response
