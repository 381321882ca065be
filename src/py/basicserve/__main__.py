import argparse
import ipaddress
import sys
from typing import Sequence

from .config import HOST, PORT, VERSION, Config
from .server import run
from .utils.logging import error, info, setLevel


def parseAddress(text: str) -> tuple[str, int]:
	"""Parses an `IP:PORT` address, like `127.0.0.1:4000` or `[::1]:4000`."""
	host, sep, port = text.rpartition(":")
	try:
		if not sep:
			raise ValueError(text)
		host = host[1:-1] if host.startswith("[") and host.endswith("]") else host
		ipaddress.ip_address(host)
		number = int(port)
		if not 0 <= number <= 65535:
			raise ValueError(port)
	except ValueError:
		raise argparse.ArgumentTypeError(f"failed to parse IP address: {text!r}")
	return host, number


def parser() -> argparse.ArgumentParser:
	res = argparse.ArgumentParser(
		prog="basic-http-server",
		description="A basic HTTP file server",
	)
	res.add_argument(
		"-a",
		"--addr",
		dest="addr",
		type=parseAddress,
		default=(HOST, PORT),
		metavar="ADDR",
		help=f"The IP:PORT combination (default {HOST}:{PORT})",
	)
	res.add_argument(
		"root",
		nargs="?",
		default=".",
		metavar="ROOT",
		help="The root directory for serving files (default .)",
	)
	res.add_argument(
		"-x",
		dest="extensions",
		action="store_true",
		help="Enable developer extensions",
	)
	res.add_argument(
		"-v",
		"--verbose",
		action="store_true",
		help="Log debug messages",
	)
	res.add_argument("--version", action="version", version=VERSION)
	return res


def main(args: Sequence[str] | None = None) -> int:
	options = parser().parse_args(args)
	if options.verbose:
		setLevel("debug")
	host, port = options.addr
	config = Config.Make(options.root, extensions=options.extensions, host=host, port=port)
	if not config.root.is_dir():
		error(f"Root directory does not exist: {config.root}", "ROOTERR")
		return 1
	# Display the configuration to be helpful
	info(f"basic-http-server {VERSION}")
	info(f"addr: http://{host}:{port}")
	info(f"root dir: {config.root}")
	info(f"extensions: {config.extensions}")
	try:
		run(config)
	except OSError as e:
		error(f"error: {e}", "SERVERERR")
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
