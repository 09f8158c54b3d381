import asyncio
import json
import socket

import pytest

from nats_health_check.config import ENV_HOST, ENV_PORT, ENV_SUBJECT, ENV_TIMEOUT, ENV_USER_AGENT

LOCAL_ADDR = ("192.168.1.20", 51514)
REMOTE_ADDR = ("10.0.0.9", 4222)


class FakeWriter:
	def __init__(self, sockname, peername=REMOTE_ADDR):
		self._extra = {"sockname": sockname, "peername": peername}

	def get_extra_info(self, name, default=None):
		return self._extra.get(name, default)


class FakeTransport:
	def __init__(self, sockname):
		self._io_writer = FakeWriter(sockname)


class FakeMsg:
	def __init__(self, data: bytes):
		self.data = data


class FakeNats:
	"""Stands in for nats.aio.client.Client; records what the probe does with it."""

	def __init__(self, reply=b"ok", sockname=LOCAL_ADDR, connect_error=None, request_error=None, drain_error=None, reported_error=None):
		self.reply = reply
		self.reported_error = reported_error
		self.sockname = sockname
		self.connect_error = connect_error
		self.request_error = request_error
		self.drain_error = drain_error
		self.connect_kwargs = None
		self.requests = []
		self.drained = False
		self.closed = False
		self._transport = None

	async def connect(self, **kwargs):
		self.connect_kwargs = kwargs
		if self.connect_error is not None:
			raise self.connect_error
		if self.reported_error is not None:
			# nats-py style: report through error_cb, then keep retrying
			await kwargs["error_cb"](self.reported_error)
			await asyncio.Event().wait()
		self._transport = FakeTransport(self.sockname)

	async def request(self, subject, payload, timeout=None):
		self.requests.append((subject, payload, timeout))
		if self.request_error is not None:
			raise self.request_error
		return FakeMsg(self.reply)

	async def drain(self):
		self.drained = True
		if self.drain_error is not None:
			raise self.drain_error

	async def close(self):
		self.closed = True


class FakeBroker:
	"""Client factory handing out FakeNats instances built with fixed options."""

	def __init__(self, **options):
		self.options = options
		self.clients = []

	def __call__(self):
		client = FakeNats(**self.options)
		self.clients.append(client)
		return client

	@property
	def client(self):
		return self.clients[-1] if self.clients else None


@pytest.fixture
def clean_env(monkeypatch):
	for name in (ENV_HOST, ENV_PORT, ENV_SUBJECT, ENV_TIMEOUT, ENV_USER_AGENT):
		# setenv first so the undo also removes values loaded from .env files
		monkeypatch.setenv(name, "x")
		monkeypatch.delenv(name)
	return monkeypatch


class StubNatsServer:
	"""In-process NATS server speaking just enough protocol for one request.

	Handles INFO/CONNECT, PING/PONG, SUB and PUB/HPUB; every request with a
	reply subject is answered with ``reply``. Published bodies are kept.
	"""

	def __init__(self, reply=b"ok"):
		self.reply = reply
		self.published = []
		self.port = None
		self._server = None

	async def __aenter__(self):
		self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
		self.port = self._server.sockets[0].getsockname()[1]
		return self

	async def __aexit__(self, *exc_info):
		self._server.close()
		await self._server.wait_closed()

	@property
	def url(self):
		return f"nats://127.0.0.1:{self.port}"

	async def _handle(self, reader, writer):
		info = {"server_id": "stub", "version": "2.10.0", "proto": 1, "max_payload": 1048576, "headers": True}
		writer.write(b"INFO " + json.dumps(info).encode() + b"\r\n")
		await writer.drain()
		subs = {}
		try:
			while True:
				line = await reader.readline()
				if not line:
					break
				parts = line.decode().split()
				if not parts:
					continue
				op, args = parts[0].upper(), parts[1:]
				if op == "PING":
					writer.write(b"PONG\r\n")
				elif op == "SUB":
					subs[args[-1]] = args[0]
				elif op in ("PUB", "HPUB"):
					size = int(args[-1])
					data = (await reader.readexactly(size + 2))[:size]
					body = data[int(args[-2]):] if op == "HPUB" else data
					self.published.append((args[0], body))
					reply_to = args[1] if len(args) == (4 if op == "HPUB" else 3) else None
					if reply_to:
						for sid, pattern in subs.items():
							if pattern == reply_to or (pattern.endswith(".*") and reply_to.startswith(pattern[:-1])):
								writer.write(b"MSG %s %s %d\r\n%s\r\n" % (reply_to.encode(), sid.encode(), len(self.reply), self.reply))
								break
				await writer.drain()
		except (ConnectionError, asyncio.IncompleteReadError):
			pass
		finally:
			writer.close()


def free_port():
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
		sock.bind(("127.0.0.1", 0))
		return sock.getsockname()[1]
