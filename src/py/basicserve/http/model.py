import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import (
	Any,
	AsyncIterator,
	BinaryIO,
	NamedTuple,
	TypeAlias,
	Union,
)

from ..utils.io import DEFAULT_ENCODING, asBytes
from .status import HTTP_STATUS

# Size of the chunks read from files when streaming them.
FILE_CHUNK_SIZE: int = 64_000

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in name.split("-"))
		headers[key] = normalized
		return normalized


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str | None
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Body = 1
	Complete = 2
	Timeout = 10
	NoData = 11
	BadFormat = 12


# Type alias for what the parser would produce
HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	"HTTPRequest",
]

# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a part (or a whole) body as bytes."""

	payload: bytes = b""
	length: int = 0
	# NOTE: We don't know how many is remaining
	remaining: int | None = None

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))

	@property
	def raw(self) -> bytes:
		return self.payload


class HTTPBodyFileStream:
	"""A lazy, single-pass body that reads an already open file in chunks. The
	file is closed once the stream is exhausted, aborted or discarded."""

	__slots__ = ["file", "length", "size", "closed"]

	def __init__(self, file: BinaryIO, length: int, size: int = FILE_CHUNK_SIZE):
		self.file: BinaryIO = file
		self.length: int = length
		self.size: int = size
		self.closed: bool = False

	async def chunks(self) -> AsyncIterator[bytes]:
		try:
			while not self.closed:
				chunk = await asyncio.to_thread(self.file.read, self.size)
				if not chunk:
					break
				yield chunk
		finally:
			self.close()

	def close(self) -> None:
		if not self.closed:
			self.closed = True
			self.file.close()

	def __str__(self) -> str:
		return f"FileStream({getattr(self.file, 'name', '?')} {self.length}b{' closed' if self.closed else ''})"


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFileStream


class HTTPBodyWriter(ABC):
	"""A generic writer for response heads and bodies."""

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodyFileStream):
			stream = body.chunks()
			try:
				async for chunk in stream:
					await self._writeBytes(chunk, True)
			finally:
				# The client may have gone away mid-stream, in which case the
				# file handle must be released right now.
				await stream.aclose()
				body.close()
			return True
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	@abstractmethod
	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool:
		...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest:
	"""Represents an HTTP request, which also acts as a factory for
	responses."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"_headers",
		"_body",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: str | None = None,
		headers: HTTPHeaders | None = None,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
	):
		self.method: str = method
		# NOTE: The path is kept as sent by the client, still percent-encoded.
		self.path: str = path
		# The raw query string, `None` when the target had no `?`
		self.query: str | None = query
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers or HTTPHeaders({})
		self._body: HTTPBodyBlob | None = body

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	@property
	def body(self) -> HTTPBodyBlob | None:
		return self._body

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			protocol=self.protocol,
			headers=headers,
		)

	def respondEmpty(
		self, status: int, headers: dict[str, str] | None = None
	) -> "HTTPResponse":
		return self.respond(content=None, status=status, headers=headers)

	def redirect(self, url: str, permanent: bool = False) -> "HTTPResponse":
		# SEE: https://developer.mozilla.org/en-US/docs/Web/HTTP/Redirections
		return self.respondEmpty(
			status=301 if permanent else 302, headers={"Location": str(url)}
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{'' if self.query is None else f'?{self.query}'} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		body: THTTPBody | None = None
		content_length: int = 0
		if content is None:
			pass
		elif isinstance(content, (str, bytes, bytearray)):
			payload: bytes = asBytes(content)
			content_length = len(payload)
			body = HTTPBodyBlob(payload, content_length)
		elif isinstance(content, HTTPBodyFileStream):
			body = content
			content_length = content.length
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		res_headers: dict[str, str] = {}
		for k, v in (headers or {}).items():
			res_headers[headername(k)] = v
		if contentType is not None:
			res_headers["Content-Type"] = contentType
		# The length is always known, which keeps connections reusable.
		res_headers["Content-Length"] = str(content_length)
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				res_headers,
				contentType=res_headers.get("Content-Type"),
				contentLength=content_length,
			),
			body=body,
			protocol=protocol,
		)

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body

	@property
	def contentType(self) -> str | None:
		return self.getHeader("Content-Type")

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	def discard(self) -> None:
		"""Releases the resources held by the body, for responses that
		are replaced and never sent."""
		if isinstance(self.body, HTTPBodyFileStream):
			self.body.close()

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [
			f"{headername(k)}: {v}" for k, v in self.headers.headers.items()
		]
		lines.insert(0, f"{self.protocol} {self.status} {message}")
		lines.append("")
		lines.append("")
		# Header values are Latin-1 per RFC 9110, non-encodable values fail
		# here rather than on the wire.
		return "\r\n".join(lines).encode("latin-1")

	async def read(self) -> bytes:
		"""Loads the whole body, mostly useful for testing."""
		if self.body is None:
			return b""
		elif isinstance(self.body, HTTPBodyBlob):
			return self.body.payload
		else:
			data = bytearray()
			async for chunk in self.body.chunks():
				data += chunk
			return bytes(data)

	def text(self, encoding: str = DEFAULT_ENCODING) -> str:
		"""Returns the body of a blob response as text."""
		if isinstance(self.body, HTTPBodyBlob):
			return self.body.payload.decode(encoding)
		else:
			raise ValueError(f"Response body is not a blob: {self.body}")

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers.headers} {self.body})"


# EOF
