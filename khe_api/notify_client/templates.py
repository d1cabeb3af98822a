# khe_api/notify_client/templates.py
"""Email subjects + bodies (Markdown). Keyed by the event that sends them."""

from typing import Dict, Optional, Tuple

SIGNATURE = "\n\n\nRegards,\n\nKent Hack Enough Team"

REGISTRATION = (
    "Welcome to Kent Hack Enough",
    "# Thanks for registering!\n"
    "Your account is ready. Log in at [khe.io](https://khe.io) to fill out your application."
    + SIGNATURE,
)

APPLICATION_RECEIVED = (
    "Your Kent Hack Enough Application",
    "# Thanks for applying to Kent Hack Enough!\nWe appreciate your interest.",
)

APPROVED = (
    "You've been accepted to KHE!",
    "## You're invited!\n\n\n"
    "Congratulations, you have been accepted to Kent Hack Enough. "
    "Please RSVP here: [khe.io/rsvp](https://khe.io/rsvp).\n\n\n"
    "**What you should bring:**\n"
    "- Laptop and charger\n"
    "- Valid school ID\n"
    "- Phone/charger\n"
    "- Change of clothes\n"
    "- Basic toiletries\n"
    "- Pillow and blanket\n\n\n"
    "**Hackers under the age of 18:** please have a parent/guardian sign the minor waiver "
    "and return it to [staff@khe.io](mailto:staff@khe.io) before the event.\n\n\n"
    "Make sure your resume is attached to your application if you're looking for "
    "full time jobs or internships."
    + SIGNATURE,
)

WAITLISTED = (
    "You have been waitlisted",
    "Hello,\n\nYou have been added to the Kent Hack Enough waitlist. "
    "Please stand by for further emails, as we will try to accommodate as many "
    "hackers from the waitlist as we can."
    + SIGNATURE,
)

DENIED = (
    "KHE Status: Denied",
    "Hello,\n\nWe're sorry to say that you have been denied from Kent Hack Enough. "
    "We are trying to accommodate as many hackers as we can, but we just can't fit "
    "everyone in our venue. Thank you so much for your interest, and please come again next year!"
    + SIGNATURE,
)

_BY_STATUS: Dict[str, Tuple[str, str]] = {
    "approved": APPROVED,
    "waitlisted": WAITLISTED,
    "denied": DENIED,
}


def for_status(status: Optional[str]) -> Optional[Tuple[str, str]]:
    """(subject, body) announcing an application status, or None for pending/unknown."""
    return _BY_STATUS.get(status or "")
