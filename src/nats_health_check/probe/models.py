from pydantic import BaseModel

from nats_health_check.config import DEFAULT_USER_AGENT

OK_REPLY = "ok"


class ProbeRequest(BaseModel):
	"""Body of the health-check request. Field order is the wire order."""

	client_ip: str = ""
	user_agent: str = DEFAULT_USER_AGENT

	def to_payload(self) -> bytes:
		return self.model_dump_json().encode("utf-8")


def reply_text(data: bytes) -> str:
	return (data or b"").decode("utf-8", errors="replace")
