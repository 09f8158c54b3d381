import asyncio
import ipaddress
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from nats.aio.client import Client as NATS

from nats_health_check.errors import TransportError

DEFAULT_CONNECT_TIMEOUT_S = 2.0

ErrorCallback = Callable[[Exception], Awaitable[None]]


@dataclass
class DialResult:
	connection: Any
	client_ip: str


def canonical_ip(host: str) -> str:
	# Zone ids ("fe80::1%eth0") are dropped; v4-mapped v6 prints as v4
	try:
		ip = ipaddress.ip_address(host.split("%", 1)[0])
	except ValueError as exc:
		raise TransportError(f"cannot resolve local address {host!r}") from exc
	if ip.version == 6 and ip.ipv4_mapped is not None:
		ip = ip.ipv4_mapped
	return str(ip)


def local_address(connection: Any) -> str:
	"""Return the local IP of an established NATS connection.

	Reads ``sockname`` (the client side of the socket) from the stream writer
	behind the client's TCP transport. The remote address is never used.
	"""
	transport = getattr(connection, "_transport", None)
	writer = getattr(transport, "_io_writer", None)
	sockname = writer.get_extra_info("sockname") if writer is not None else None
	if not sockname:
		raise TransportError("broker connection has no local socket address")
	if isinstance(sockname, (tuple, list)):
		return canonical_ip(str(sockname[0]))
	return canonical_ip(str(sockname))


def _drop_transport(connection: Any) -> None:
	# A cancelled connect leaves no usable client; close a half-open socket directly
	writer = getattr(getattr(connection, "_transport", None), "_io_writer", None)
	if writer is not None:
		writer.close()


class CapturingDialer:
	"""Opens the broker connection and records which local IP it went out on.

	The connection itself is handed back untouched. The captured IP comes back
	with it in a :class:`DialResult`, so nothing can read it before the dial
	has finished.
	"""

	def __init__(
		self,
		client_factory: Callable[[], Any] = NATS,
		connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
		error_cb: Optional[ErrorCallback] = None,
	) -> None:
		self.client_factory = client_factory
		self.connect_timeout_s = connect_timeout_s
		self.error_cb = error_cb

	async def _on_error(self, exc: Exception) -> None:
		if self.error_cb is not None:
			await self.error_cb(exc)

	async def dial(self, url: str) -> DialResult:
		nc = self.client_factory()
		first_error: asyncio.Future = asyncio.get_running_loop().create_future()

		async def on_error(exc: Exception) -> None:
			if not first_error.done():
				first_error.set_result(exc)
			await self._on_error(exc)

		# nats-py reports failed attempts through error_cb and keeps cycling
		# the server pool, so the first reported error ends the dial.
		connecting = asyncio.ensure_future(nc.connect(
			servers=[url],
			allow_reconnect=False,
			max_reconnect_attempts=0,
			connect_timeout=self.connect_timeout_s,
			error_cb=on_error,
		))
		await asyncio.wait({connecting, first_error}, return_when=asyncio.FIRST_COMPLETED)
		if not connecting.done():
			connecting.cancel()
			try:
				await connecting
			except asyncio.CancelledError:
				pass
			_drop_transport(nc)
			raise first_error.result()
		connecting.result()
		try:
			client_ip = local_address(nc)
		except TransportError:
			await nc.close()
			raise
		return DialResult(connection=nc, client_ip=client_ip)
