import os
import re
from dataclasses import dataclass
from typing import Optional

ENV_HOST = "NATS_HOST"
ENV_PORT = "NATS_PORT"
ENV_SUBJECT = "NATS_REQUEST_SUBJECT"
ENV_TIMEOUT = "NATS_REQUEST_TIMEOUT"
ENV_USER_AGENT = "NATS_USER_AGENT"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4222
DEFAULT_TIMEOUT_S = 5.0
DEFAULT_USER_AGENT = "NATS Health Check"

_UNIT_SECONDS = {
	"ns": 1e-9,
	"us": 1e-6,
	"µs": 1e-6,  # micro sign
	"μs": 1e-6,  # greek mu
	"ms": 1e-3,
	"s": 1.0,
	"m": 60.0,
	"h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def get_env(name: str) -> Optional[str]:
	value = os.environ.get(name)
	return value.strip() if value and value.strip() else None


def parse_duration(text: str) -> float:
	"""Parse a Go-style duration ("5s", "1m30s", "250ms") into seconds.

	A bare number is taken as seconds. Only positive durations are accepted.
	"""
	raw = (text or "").strip()
	if not raw:
		raise ValueError("empty duration")
	try:
		seconds = float(raw)
	except ValueError:
		seconds = None
	if seconds is None:
		pos = 0
		seconds = 0.0
		for m in _DURATION_PART.finditer(raw):
			if m.start() != pos:
				break
			seconds += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
			pos = m.end()
		if pos != len(raw):
			raise ValueError(f"invalid duration {raw!r}")
	if not 0 < seconds < float("inf"):
		raise ValueError(f"duration must be positive: {raw!r}")
	return seconds


def parse_port(text: str) -> int:
	port = int(str(text).strip())
	if not 0 < port < 65536:
		raise ValueError(f"port out of range: {port}")
	return port


@dataclass
class ProbeSettings:
	host: str = DEFAULT_HOST
	port: int = DEFAULT_PORT
	subject: str = ""
	timeout_s: float = DEFAULT_TIMEOUT_S
	user_agent: str = DEFAULT_USER_AGENT

	@property
	def url(self) -> str:
		return f"nats://{self.host}:{self.port}"

	@classmethod
	def from_env(cls) -> "ProbeSettings":
		# Raises ValueError naming the variable when a value does not parse
		settings = cls()
		settings.host = get_env(ENV_HOST) or DEFAULT_HOST
		settings.subject = get_env(ENV_SUBJECT) or ""
		settings.user_agent = get_env(ENV_USER_AGENT) or DEFAULT_USER_AGENT
		port = get_env(ENV_PORT)
		if port:
			try:
				settings.port = parse_port(port)
			except ValueError as exc:
				raise ValueError(f"{ENV_PORT}: {exc}") from exc
		timeout = get_env(ENV_TIMEOUT)
		if timeout:
			try:
				settings.timeout_s = parse_duration(timeout)
			except ValueError as exc:
				raise ValueError(f"{ENV_TIMEOUT}: {exc}") from exc
		return settings
