import os
from pathlib import Path
from typing import NamedTuple

VERSION: str = "0.8.1"

# Local development server, so we only listen on the loopback by default
HOST: str = os.getenv("HOST", "127.0.0.1")
PORT: int = int(os.getenv("PORT", 4000))

LOG_REQUESTS: bool = os.getenv("BASICSERVE_LOG_REQUESTS", "1") == "1"


class Config(NamedTuple):
	"""The process-wide configuration, created once at startup and passed
	to every request handling stage. It is never mutated."""

	root: Path
	extensions: bool = False
	host: str = HOST
	port: int = PORT

	@staticmethod
	def Make(
		root: str | Path = ".",
		*,
		extensions: bool = False,
		host: str = HOST,
		port: int = PORT,
	) -> "Config":
		return Config(
			root=Path(os.path.normpath(Path(root).absolute())),
			extensions=extensions,
			host=host,
			port=port,
		)


# EOF
