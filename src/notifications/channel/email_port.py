"""Email channel port — abstract interface for transactional email dispatch."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str
    html_body: str | None = None
    template: str | None = None


@dataclass(frozen=True)
class DeliveryReceipt:
    status: str
    message_id: str | None = None
    error: str | None = None

    @property
    def sent(self) -> bool:
        return self.status == "sent"


class EmailPort(ABC):
    """Abstract interface for email dispatch adapters."""

    @abstractmethod
    def send(self, message: EmailMessage) -> DeliveryReceipt:
        """Send one message. Provider rejections come back as a ``failed`` receipt."""
        ...
