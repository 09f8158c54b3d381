import asyncio
from typing import Callable, Optional

from nats_health_check.config import ProbeSettings
from nats_health_check.errors import InvalidSubjectError, ProbeFailure
from nats_health_check.probe.dialer import CapturingDialer
from nats_health_check.probe.models import OK_REPLY, ProbeRequest, reply_text


class HealthCheckProbe:
	"""One request/reply round-trip against a remote health-check responder.

	The run is strictly sequential: validate, dial (capturing the local IP),
	build the payload, request once, compare the reply with ``ok``. No retries.
	"""

	def __init__(
		self,
		settings: ProbeSettings,
		dialer: Optional[CapturingDialer] = None,
		trace: Optional[Callable[[str], None]] = None,
	) -> None:
		self.settings = settings
		self.dialer = dialer or CapturingDialer()
		self.trace = trace

	@classmethod
	def from_env(cls) -> "HealthCheckProbe":
		return cls(ProbeSettings.from_env())

	def _trace(self, message: str) -> None:
		if self.trace is not None:
			self.trace(message)

	async def run(self) -> str:
		s = self.settings
		if not s.subject:
			raise InvalidSubjectError()

		self._trace(f"connecting to {s.url}")
		dialed = await self.dialer.dial(s.url)
		nc = dialed.connection
		try:
			request = ProbeRequest(client_ip=dialed.client_ip, user_agent=s.user_agent)
			payload = request.to_payload()
			self._trace(f"request on {s.subject!r}: {payload.decode('utf-8')}")
			msg = await nc.request(s.subject, payload, timeout=s.timeout_s)
		except BaseException:
			await nc.close()
			raise
		await nc.drain()

		text = reply_text(msg.data)
		if text != OK_REPLY:
			raise ProbeFailure(text)
		return text

	def check(self) -> str:
		return asyncio.run(self.run())
