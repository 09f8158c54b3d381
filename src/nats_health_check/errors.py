class ProbeError(RuntimeError):
	"""Base class for failures raised by the health-check probe itself.

	Errors coming from the NATS client or the socket layer are not wrapped;
	they propagate unchanged to the caller.
	"""


class InvalidSubjectError(ProbeError):
	def __init__(self, message: str = "invalid subject") -> None:
		super().__init__(message)


class TransportError(ProbeError):
	pass


class ProbeFailure(ProbeError):
	"""The responder answered, but not with ``ok``. ``str()`` is the reply text."""

	def __init__(self, reply: str) -> None:
		super().__init__(reply)
		self.reply = reply
