# khe_api/notify_client/__init__.py
from .mail_client import MailClient, mail_quietly
from .push_client import PushClient, push_quietly

__all__ = ["MailClient", "PushClient", "mail_quietly", "push_quietly"]
