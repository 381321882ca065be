import errno
from enum import Enum
from typing import Any, Iterator, NamedTuple, TypeAlias, Union

from .http.model import HTTPBodyFileStream, HTTPResponse
from .utils.logging import error

# -----------------------------------------------------------------------------
#
# ERROR KINDS
#
# -----------------------------------------------------------------------------


class ErrorKind(Enum):
	"""The kinds of failures produced while serving a request. The value is
	the message that ends up in the logs.

	`Io` wraps filesystem errors and keeps the original `OSError` as the cause,
	as the "not found" case triggers fallbacks (404, directory listing). The
	other kinds have local semantics and may wrap a lower level cause."""

	Http = "HTTP error"
	Io = "I/O error"
	MarkdownUtf8 = "markdown is not UTF-8"
	StripPrefixInDirList = "failed to strip prefix in directory listing"
	TemplateRender = "failed to render template"
	UriInvalidChar = "requested URI contains an invalid character"
	UriNotAbsolute = "requested URI is not an absolute path"
	UriNotUtf8 = "requested URI is not UTF-8"
	UriOutsideRoot = "requested URI resolves outside of the root directory"
	WriteInDirList = "formatting error while creating directory listing"


# -----------------------------------------------------------------------------
#
# FAILURE
#
# -----------------------------------------------------------------------------


class Failure(NamedTuple):
	"""A failed outcome, threaded through the serving stages in place of
	a response."""

	kind: ErrorKind
	cause: Union[BaseException, "Failure", None] = None

	@staticmethod
	def Io(cause: OSError) -> "Failure":
		return Failure(ErrorKind.Io, cause)

	@property
	def isNotFound(self) -> bool:
		return (
			self.kind is ErrorKind.Io
			and isinstance(self.cause, OSError)
			and (
				isinstance(self.cause, FileNotFoundError)
				or self.cause.errno == errno.ENOENT
			)
		)

	def chain(self) -> Iterator[str]:
		"""Yields the description of this failure followed by each of its
		causes, outermost first."""
		yield self.kind.value
		cause = self.cause
		seen: set[int] = set()
		while cause is not None and id(cause) not in seen:
			seen.add(id(cause))
			if isinstance(cause, Failure):
				yield cause.kind.value
				cause = cause.cause
			else:
				yield str(cause) or cause.__class__.__name__
				cause = cause.__cause__ or cause.__context__

	def __str__(self) -> str:
		return self.kind.value


# Each serving stage produces an outcome: either a response or a failure.
TOutcome: TypeAlias = HTTPResponse | Failure


def logErrorChain(failure: Failure) -> None:
	"""Logs the failure, then each of its causes in order."""
	for i, description in enumerate(failure.chain()):
		error(f"{'error' if i == 0 else 'caused by'}: {description}")


def respond(
	content: Any,
	*,
	contentType: str | None = None,
	status: int = 200,
	headers: dict[str, str] | None = None,
) -> TOutcome:
	"""Creates a response, returning an `Http` failure if the response
	can't be built."""
	try:
		return HTTPResponse.Create(
			content, contentType=contentType, status=status, headers=headers
		)
	except ValueError as e:
		if isinstance(content, HTTPBodyFileStream):
			content.close()
		return Failure(ErrorKind.Http, e)


# EOF
