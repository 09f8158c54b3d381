#!/usr/bin/env python3
"""
Local responder for trying nats-health-check end to end.

Subscribes to a subject, prints every request payload and answers with a fixed
reply (``ok`` unless told otherwise). Stop with Ctrl-C.
"""

import argparse
import asyncio
import json
import sys

from nats.aio.client import Client as NatsClient


async def serve(url: str, subject: str, reply: str) -> None:
	nc = NatsClient()
	print(f"[responder] connecting to {url}…")
	await nc.connect(servers=[url], name="health-responder")

	async def handle(msg) -> None:
		try:
			body = json.loads(msg.data or b"{}")
		except ValueError:
			body = msg.data.decode("utf-8", errors="replace")
		print(f"[responder] {msg.subject}: {body} -> {reply!r}")
		await msg.respond(reply.encode("utf-8"))

	await nc.subscribe(subject, cb=handle)
	print(f"[responder] listening on {subject!r} ✔")
	try:
		await asyncio.Event().wait()
	finally:
		await nc.drain()
		print("[responder] closed ✔")


def main(argv: list[str] | None = None) -> int:
	p = argparse.ArgumentParser(description="Reply to health-check requests on a NATS subject")
	p.add_argument("--url", default="nats://127.0.0.1:4222")
	p.add_argument("--subject", "-s", default="health.check")
	p.add_argument("--reply", default="ok", help="Reply body (use anything but 'ok' to simulate a failure)")
	args = p.parse_args(argv if argv is not None else sys.argv[1:])
	try:
		asyncio.run(serve(args.url, args.subject, args.reply))
	except KeyboardInterrupt:
		pass
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
