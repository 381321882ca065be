import asyncio
import socket
from functools import partial
from pathlib import Path

from basicserve.config import Config
from basicserve.http.model import (
	HTTPBodyFileStream,
	HTTPBodyWriter,
	HTTPRequest,
	HTTPResponse,
)
from basicserve.serve import serve
from basicserve.server import SERVER_ERROR, AIOSocketServer, ServerOptions

from conftest import makeRequest


class MemoryWriter(HTTPBodyWriter):
	"""Collects what is written, optionally failing like a client that went
	away after `failAfter` writes."""

	def __init__(self, failAfter: int | None = None) -> None:
		self.data: bytearray = bytearray()
		self.writes: int = 0
		self.failAfter: int | None = failAfter

	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool:
		if self.failAfter is not None and self.writes >= self.failAfter:
			raise BrokenPipeError(32, "Broken pipe")
		self.writes += 1
		self.data += chunk
		return True


def sendResponse(
	config: Config, request: HTTPRequest, writer: MemoryWriter
) -> tuple[HTTPResponse | None, HTTPResponse | None]:
	"""Returns what the handler produced and what `SendResponse` returned."""
	produced: list[HTTPResponse] = []

	async def handler(request: HTTPRequest) -> HTTPResponse:
		res = await serve(config, request)
		produced.append(res)
		return res

	sent = asyncio.run(AIOSocketServer.SendResponse(request, handler, writer))
	return (produced[0] if produced else None), sent


def test_send_file(config: Config):
	writer = MemoryWriter()
	produced, sent = sendResponse(config, makeRequest("/a.txt"), writer)
	assert sent is produced
	data = bytes(writer.data)
	assert data.startswith(b"HTTP/1.1 200 OK\r\n")
	assert b"Content-Type: text/plain\r\n" in data
	assert b"Content-Length: 5\r\n" in data
	assert data.endswith(b"\r\n\r\nhello")
	assert sent is not None and isinstance(sent.body, HTTPBodyFileStream)
	assert sent.body.closed


def test_early_close_releases_file(root: Path, config: Config):
	(root / "large.bin").write_bytes(b"x" * 200_000)
	# The head and the first chunk go through, then the client is gone
	writer = MemoryWriter(failAfter=2)
	produced, sent = sendResponse(config, makeRequest("/large.bin"), writer)
	assert sent is None
	assert produced is not None
	assert isinstance(produced.body, HTTPBodyFileStream)
	assert produced.body.closed
	assert produced.body.file.closed


def test_close_before_head_releases_file(config: Config):
	writer = MemoryWriter(failAfter=0)
	produced, sent = sendResponse(config, makeRequest("/a.txt"), writer)
	assert sent is None
	assert writer.data == b""
	assert produced is not None
	assert isinstance(produced.body, HTTPBodyFileStream)
	assert produced.body.closed
	assert produced.body.file.closed


def test_handler_failure_sends_server_error():
	async def handler(request: HTTPRequest) -> HTTPResponse:
		raise RuntimeError("handler failed")

	writer = MemoryWriter()
	sent = asyncio.run(
		AIOSocketServer.SendResponse(makeRequest("/"), handler, writer)
	)
	assert sent is None
	assert bytes(writer.data) == SERVER_ERROR
	assert SERVER_ERROR.endswith(b"Internal server error: Request not sent")


def exchange(config: Config, payload: bytes) -> bytes:
	"""Runs a connection worker on one end of a socket pair, sends the
	payload from the other end and reads until the worker closes."""

	async def main() -> bytes:
		loop = asyncio.get_running_loop()
		server, client = socket.socketpair()
		server.setblocking(False)
		client.setblocking(False)
		task = loop.create_task(
			AIOSocketServer.OnRequest(
				partial(serve, config),
				server,
				loop=loop,
				options=ServerOptions(logRequests=False, keepalive=5.0),
			)
		)
		try:
			await loop.sock_sendall(client, payload)
			data = bytearray()
			while chunk := await loop.sock_recv(client, 65_536):
				data += chunk
			await task
			return bytes(data)
		finally:
			client.close()

	return asyncio.run(main())


def test_connection_close(config: Config):
	data = exchange(
		config, b"GET /a.txt HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
	)
	assert data.startswith(b"HTTP/1.1 200 OK\r\n")
	assert data.endswith(b"\r\n\r\nhello")


def test_keep_alive(config: Config):
	data = exchange(
		config,
		b"GET /a.txt HTTP/1.1\r\n\r\n"
		b"GET /docs HTTP/1.1\r\n\r\n"
		b"GET /missing HTTP/1.1\r\nConnection: close\r\n\r\n",
	)
	assert data.count(b"HTTP/1.1 ") == 3
	assert data.index(b"200 OK") < data.index(b"302 Found") < data.index(b"404 Not Found")
	assert b"Location: /docs/\r\n" in data


def test_http10_closes(config: Config):
	data = exchange(config, b"GET /a.txt HTTP/1.0\r\n\r\n")
	# The response keeps the protocol of the server
	assert data.startswith(b"HTTP/1.1 200 OK\r\n")
	assert data.endswith(b"hello")


# EOF
