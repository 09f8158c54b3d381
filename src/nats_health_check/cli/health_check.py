import argparse
import sys
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.text import Text

from nats_health_check.config import (
	ENV_HOST,
	ENV_PORT,
	ENV_SUBJECT,
	ENV_TIMEOUT,
	ENV_USER_AGENT,
	ProbeSettings,
	parse_duration,
	parse_port,
)
from nats_health_check.errors import ProbeFailure
from nats_health_check.probe.client import HealthCheckProbe
from nats_health_check.probe.dialer import CapturingDialer

err_console = Console(stderr=True, highlight=False)


def _duration(value: str) -> float:
	try:
		return parse_duration(value)
	except ValueError as exc:
		raise argparse.ArgumentTypeError(str(exc)) from exc


def _port(value: str) -> int:
	try:
		return parse_port(value)
	except ValueError as exc:
		raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser(defaults: ProbeSettings) -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(
		prog="nats-health-check",
		description="A command-line script for performing remote node health checks using NATS.",
		epilog=(
			"Prints 'ok' and exits 0 when the responder replies 'ok'. Any other reply is printed "
			"to stderr as the error and exits 1; an empty reply is shown as '(empty reply)', "
			"which is not text sent by the responder."
		),
	)
	p.add_argument("--host", default=defaults.host, help=f"Specify the NATS server host. [env: {ENV_HOST}]")
	p.add_argument("--port", "-p", type=_port, default=defaults.port, help=f"Specify the NATS server port. [env: {ENV_PORT}]")
	p.add_argument(
		"--subject", "-s", "-sub", "--sub", "-t", "-topic", "--topic",
		dest="subject",
		default=defaults.subject,
		help=f"Specify the NATS subject to send health check messages. [env: {ENV_SUBJECT}]",
	)
	p.add_argument(
		"--timeout",
		type=_duration,
		default=defaults.timeout_s,
		help=f"Specify the timeout for the health check (e.g. 5s, 500ms; bare numbers are seconds). [env: {ENV_TIMEOUT}]",
	)
	p.add_argument(
		"--user-agent",
		default=defaults.user_agent,
		help=f"Specify a custom user agent string for identifying the client. [env: {ENV_USER_AGENT}]",
	)
	p.add_argument("--verbose", "-v", action="store_true", help="Show connection details on stderr")
	return p


def parse_args(argv: list[str]) -> argparse.Namespace:
	try:
		defaults = ProbeSettings.from_env()
	except ValueError as exc:
		build_parser(ProbeSettings()).error(str(exc))
	return build_parser(defaults).parse_args(argv)


def _report_error(exc: BaseException) -> None:
	message = str(exc)
	if isinstance(exc, ProbeFailure) and not message:
		message = "(empty reply)"
	elif not message:
		message = type(exc).__name__
	err_console.print(Text(f"error: {message}", style="red"))


def main(argv: Optional[list[str]] = None) -> int:
	# Real environment wins over .env
	load_dotenv(find_dotenv(usecwd=True))
	args = parse_args(argv if argv is not None else sys.argv[1:])
	settings = ProbeSettings(
		host=args.host,
		port=args.port,
		subject=args.subject or "",
		timeout_s=args.timeout,
		user_agent=args.user_agent,
	)

	trace = None
	dialer = CapturingDialer()
	if args.verbose:
		def trace(message: str) -> None:
			err_console.print(Text(message, style="dim"))

		async def on_nats_error(exc: Exception) -> None:
			err_console.print(Text(f"nats: {exc}", style="yellow"))

		dialer = CapturingDialer(error_cb=on_nats_error)

	probe = HealthCheckProbe(settings, dialer=dialer, trace=trace)
	try:
		result = probe.check()
	except Exception as exc:
		_report_error(exc)
		return 1
	print(result, end="")
	return 0


if __name__ == "__main__":
	sys.exit(main())
