import sys

from nats_health_check.cli.health_check import main

if __name__ == "__main__":
	sys.exit(main())
