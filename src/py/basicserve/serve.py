import asyncio
import os
from pathlib import Path

from . import ext
from .config import Config
from .errors import ErrorKind, Failure, TOutcome, logErrorChain, respond
from .http.model import HTTPBodyFileStream, HTTPRequest, HTTPResponse
from .paths import isDirectory, localPathForRequest, localPathWithIndex
from .template import renderErrorPage
from .utils.files import contentType
from .utils.logging import debug, error, info

# -----------------------------------------------------------------------------
#
# ENTRY POINT
#
# -----------------------------------------------------------------------------


async def serve(config: Config, request: HTTPRequest) -> HTTPResponse:
	"""Creates the response for the request. Failures are turned into an
	appropriate HTTP error response, so this always returns a response."""
	return transformError(await serveOrError(config, request))


async def serveOrError(config: Config, request: HTTPRequest) -> TOutcome:
	"""Handles all types of requests, without turning failures into error
	responses."""
	# This server only supports the GET method.
	unsupported = handleUnsupportedRequest(request)
	if unsupported is not None:
		return unsupported
	outcome = await serveFile(config, request)
	# Developer extensions get an opportunity to post-process the outcome.
	return await ext.serve(config, request, outcome)


def handleUnsupportedRequest(request: HTTPRequest) -> TOutcome | None:
	# SEE: https://tools.ietf.org/html/rfc7231#section-6.5.5
	if request.method != "GET":
		return makeErrorResponseFromCode(405, {"Allow": "GET"})
	return None


# -----------------------------------------------------------------------------
#
# FILE SERVING
#
# -----------------------------------------------------------------------------


async def serveFile(config: Config, request: HTTPRequest) -> TOutcome:
	"""Serves static files from the root directory. A directory URL without
	trailing slash is redirected first, otherwise the file (or the directory's
	`index.html`) is streamed."""
	redirect = await tryDirRedirect(request, config.root)
	if redirect is not None:
		return redirect
	path = await localPathWithIndex(request.path, config.root)
	if isinstance(path, Failure):
		return path
	return await respondWithFile(path)


async def tryDirRedirect(request: HTTPRequest, root: Path) -> TOutcome | None:
	"""Redirects (302) directory URLs to the same URL with a trailing `/`.

	Agents only treat paths with a trailing `/` as directories when resolving
	relative URLs, so serving `docs/index.html` for `docs` would break all of
	its relative links."""
	if request.path.endswith("/"):
		return None
	path = localPathForRequest(request.path, root)
	if isinstance(path, Failure):
		return path
	elif not await isDirectory(path):
		return None
	location: str = f"{request.path}/"
	if request.query is not None:
		location += f"?{request.query}"
	info("Redirecting", From=request.path, To=location)
	return request.redirect(location)


async def respondWithFile(path: Path) -> TOutcome:
	"""Responds with the file streamed as the body. I/O failures are kept
	as-is, as the "not found" case is dispatched on downstream."""
	try:
		file = await asyncio.to_thread(open, path, "rb")
	except OSError as e:
		return Failure.Io(e)
	try:
		stat = await asyncio.to_thread(os.fstat, file.fileno())
		return respond(
			HTTPBodyFileStream(file, stat.st_size),
			contentType=contentType(path),
		)
	except OSError as e:
		file.close()
		return Failure.Io(e)


# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


def transformError(outcome: TOutcome) -> HTTPResponse:
	"""Turns any failure into an HTTP error response."""
	if isinstance(outcome, HTTPResponse):
		return outcome
	res = makeErrorResponse(outcome)
	if isinstance(res, HTTPResponse):
		return res
	else:
		# Last-ditch error reporting if even making the error response failed.
		message: str = f"unexpected internal error: {res}"
		error(message)
		return HTTPResponse.Create(message, contentType="text/plain")


def makeErrorResponse(failure: Failure) -> TOutcome:
	"""Converts a failure to an error response with the correct status.
	Files that are not found are a 404, anything else is a 500 that gets
	logged along with its causes."""
	if failure.isNotFound:
		debug(str(failure.cause))
		return makeErrorResponseFromCode(404)
	elif failure.kind is ErrorKind.UriOutsideRoot:
		# Paths outside of the root are reported as missing
		debug("Rejected path outside of root")
		return makeErrorResponseFromCode(404)
	else:
		logErrorChain(failure)
		return makeErrorResponseFromCode(500)


def makeErrorResponseFromCode(
	status: int, headers: dict[str, str] | None = None
) -> TOutcome:
	body = renderErrorPage(status)
	if isinstance(body, Failure):
		return body
	return respond(body, contentType="text/html", status=status, headers=headers)


# EOF
