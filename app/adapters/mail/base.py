from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SendResult:
	"""Outcome of a single delivery attempt.

	Attributes:
		success: Whether the transport accepted the message.
		message_id: Transport message id when accepted.
		reason: Opaque failure reason when not accepted.
		retryable: Whether the failure is transient (e.g. 4xx, connection loss).
	"""

	success: bool
	message_id: str | None = None
	reason: str | None = None
	retryable: bool = False

	@classmethod
	def ok(cls, message_id: str) -> "SendResult":
		return cls(success=True, message_id=message_id)

	@classmethod
	def failed(cls, reason: str, *, retryable: bool = False) -> "SendResult":
		return cls(success=False, reason=reason, retryable=retryable)


class AbstractEmailSender(ABC):
	"""Interface for mail transports."""

	@abstractmethod
	async def send(
		self,
		recipient_address: str,
		subject: str,
		content: str,
	) -> SendResult:
		"""Deliver one message.

		Args:
			recipient_address: Destination email address.
			subject: Subject line.
			content: HTML body.

		Returns:
			SendResult: Success with a message id, or failure with a reason.
			Transport errors are reported as failed results, not raised.
		"""
		...
