import asyncio
import os
from pathlib import Path
from urllib.parse import unquote_to_bytes

from .errors import ErrorKind, Failure
from .utils.logging import debug, logged, warning

# --
# == Path resolution
#
# Maps the path of a request URI to a local path under the root directory.
# Resolution is purely syntactic: it never touches the filesystem, except for
# `localPathWithIndex` which needs to know if the path is a directory.


def localPathForRequest(requestPath: str, root: Path) -> Path | Failure:
	"""Maps the request's URI path to a local path, or returns a failure when
	the path is not valid UTF-8, not absolute, or escapes the root."""
	# Trim off the url parameters starting with '?'
	path: str = requestPath.split("?", 1)[0]
	# Convert %-encoding to actual values
	try:
		decoded: str = unquote_to_bytes(path).decode("utf-8")
	except UnicodeDecodeError as e:
		warning("Non UTF-8 URL", Path=path)
		return Failure(ErrorKind.UriNotUtf8, e)
	if not decoded.startswith("/"):
		warning("Found non-absolute path", Path=decoded)
		return Failure(ErrorKind.UriNotAbsolute)
	elif "\x00" in decoded:
		warning("Found NUL character in path", Path=path)
		return Failure(ErrorKind.UriInvalidChar)
	# Append the requested path to the root directory, normalizing away any
	# `..` so that we can check that it's still under the root.
	base: str = str(root)
	local: str = os.path.normpath(os.path.join(base, decoded.lstrip("/")))
	if local != base and not local.startswith(base.rstrip(os.sep) + os.sep):
		warning("Path resolves outside of root", Path=decoded, Root=base)
		return Failure(ErrorKind.UriOutsideRoot)
	logged(debug) and debug("Resolved path", URL=requestPath, Path=local)
	return Path(local)


async def isDirectory(path: Path) -> bool:
	"""Tells if the path is an existing directory, without blocking the
	event loop. Any error (not found, permissions) means `False`."""
	return await asyncio.to_thread(path.is_dir)


async def localPathWithIndex(requestPath: str, root: Path) -> Path | Failure:
	"""Like `localPathForRequest`, but directories are mapped to their
	`index.html` file."""
	path = localPathForRequest(requestPath, root)
	if isinstance(path, Failure):
		return path
	elif await isDirectory(path):
		path = path / "index.html"
		debug("Trying index for directory URL", Path=str(path))
	return path


# EOF
