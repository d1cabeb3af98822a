# khe_api/data_client/ticket_client.py
from __future__ import annotations

from typing import Any, Dict

from khe_api.data_client.tables import Ticket


def ticket_to_dict(ticket: Ticket) -> Dict[str, Any]:
    return {
        "_id": ticket.id,
        "subject": ticket.subject,
        "body": ticket.body,
        "name": ticket.name,
        "email": ticket.email,
        "open": ticket.open,
        "inProgress": ticket.in_progress,
        "worker": ticket.worker,
        "created": ticket.created.isoformat() if ticket.created else None,
    }
