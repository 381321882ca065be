from typing import ClassVar, Iterator, Literal
from urllib.parse import urlsplit

from ..utils.io import LineParser
from .model import (
	HTTPAtom,
	HTTPBodyBlob,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)


def parseTarget(target: str) -> tuple[str, str | None]:
	"""Splits a request target into its path and raw query. Absolute-form
	targets (`http://host/path`) are reduced to their path."""
	if not target.startswith("/") and "://" in target:
		parts = urlsplit(target)
		target = (parts.path or "/") + (
			f"?{parts.query}" if "?" in target else ""
		)
	path, sep, query = target.partition("?")
	return path, query if sep else None


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value", "skipping"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None
		self.skipping: int = 0

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		self.skipping = 0
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		n = len(chunk)
		available = n - start
		if self.skipping:
			# We have remaining data to skip, so we do that
			read = min(available, self.skipping)
			self.skipping -= read
			return None, read
		elif available >= 5 and chunk[start] == 0x16:
			# This is a TLS handshake sent to a plain HTTP port, we skip
			# the record based on its length.
			size = 5 + (chunk[start + 3] << 8) + chunk[start + 4]
			if available >= size:
				return None, size
			else:
				self.skipping = size - available
				return None, available
		else:
			line, read = self.line.feed(chunk, start)
			if line is None:
				return None, read
			elif not line:
				# Stray empty lines between requests are tolerated (RFC 9112 §2.2)
				return None, read
			else:
				# Request lines are expected to be ASCII, anything else is
				# replaced and will fail resolution later on.
				ln = line.decode("ascii", errors="replace")
				i = ln.find(" ")
				j = ln.rfind(" ")
				if i == -1 or i == j:
					# Malformed line, we still produce a line so that the
					# request gets an answer.
					method, target, protocol = ln.strip(), "/", "HTTP/1.0"
				else:
					method, target, protocol = ln[:i], ln[i + 1 : j], ln[j + 1 :]
				path, query = parseTarget(target)
				self.value = HTTPRequestLine(method, path, query, protocol)
				return True, read

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line ending the headers, and when it is a string, a header was added."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		else:
			ln: str = line.decode("latin-1")
			i = ln.find(":")
			if i == -1:
				return None, read
			h = ln[:i].lower().strip()
			v = ln[i + 1 :].strip()
			if h == "content-length":
				try:
					self.contentLength = int(v)
				except ValueError:
					self.contentLength = None
			elif h == "content-type":
				self.contentType = v
			n: str = headername(h)
			# Repeated headers are combined (RFC 9110 §5.3)
			self.headers[n] = f"{self.headers[n]}, {v}" if n in self.headers else v
			return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with Content-Length set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(
			b"".join(self.data),
			self.read,
			self.expected - self.read,
		)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		left: int = len(chunk) - start
		to_read: int = min(left, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return (True if self.read >= self.expected else None), to_read


class HTTPParser:
	"""A stateful, incremental HTTP request parser. Chunks are fed as they
	come from the socket, and the parser yields atoms, the most important one
	being complete `HTTPRequest` objects."""

	METHOD_HAS_BODY: ClassVar[set[str]] = {"POST", "PUT", "PATCH"}

	def __init__(self) -> None:
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def request(self, body: HTTPBodyBlob) -> HTTPRequest | None:
		line = self.requestLine
		self.parser = self.message.reset()
		if line is None:
			return None
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=line.query,
			headers=self.requestHeaders or HTTPHeaders({}),
			protocol=line.protocol,
			body=body,
		)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# When a chunk is partially read, the underlying parser keeps
			# a buffer up until it is flushed, so we never re-feed it.
			value, read = self.parser.feed(chunk, offset)
			offset += read
			if value is None:
				continue
			elif self.parser is self.message:
				line = self.message.flush()
				self.requestLine = line
				self.requestHeaders = None
				if line is not None:
					yield line
					self.parser = self.headers
			elif self.parser is self.headers:
				if value is False:
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					# Methods without a body, or with an empty one, produce
					# the request right away.
					line = self.requestLine
					if (
						line is None
						or line.method not in self.METHOD_HAS_BODY
						or not headers.contentLength
					):
						req = self.request(HTTPBodyBlob(b"", 0))
						if req:
							yield req
						else:
							yield HTTPProcessingStatus.BadFormat
					else:
						self.parser = self.bodyLength.reset(headers.contentLength)
						yield HTTPProcessingStatus.Body
			elif self.parser is self.bodyLength:
				req = self.request(self.bodyLength.flush())
				if req:
					yield req
				else:
					yield HTTPProcessingStatus.BadFormat
			else:
				raise RuntimeError(f"Unsupported parser: {self.parser}")


# EOF
