import asyncio
import socket
import threading
from dataclasses import dataclass
from functools import partial
from signal import SIGINT, SIGTERM
from typing import Any, Awaitable, Callable, NamedTuple

from .config import LOG_REQUESTS, Config
from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .serve import serve
from .utils.logging import debug, error, event, exception, info, logged, warning

THandler = Callable[[HTTPRequest], Awaitable[HTTPResponse]]


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = "127.0.0.1"
	port: int = 4000
	backlog: int = 1_024
	# This is the polling timeout for accepting new requests, so that the
	# server notices when it's stopped.
	polling: float = 1.0
	readsize: int = 4_096
	keepalive: float = 60.0
	logRequests: bool = LOG_REQUESTS
	stopSignals: bool = True


SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 39\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal server error: Request not sent"
)


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
	) -> None:
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool:
		if chunk:
			await self.loop.sock_sendall(self.client, chunk)
		return True


class AIOSocketServer:
	"""AsyncIO backend using sockets directly, with one task per accepted
	connection."""

	@classmethod
	async def OnRequest(
		cls,
		handler: THandler,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Asynchronous worker, processing the requests of a client socket
		one after the other until the connection is closed."""
		size: int = options.readsize
		buffer = bytearray(size)
		keep_alive: bool = True
		iteration: int = 0
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		read_count: int = 0
		res_count: int = 0
		req_count: int = 0
		try:
			parser: HTTPParser = HTTPParser()
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			while keep_alive:
				try:
					n = await asyncio.wait_for(
						loop.sock_recv_into(client, buffer),
						timeout=options.keepalive,
					)
					read_count += n
				except (TimeoutError, asyncio.TimeoutError):
					status = HTTPProcessingStatus.Timeout
					break
				if not n:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				# With HTTP pipelining, we may receive more than one request
				# in the same payload.
				for atom in parser.feed(bytes(buffer[:n])):
					logged(debug) and debug(
						"Request Atom",
						Atom=atom.__class__.__name__,
						Client=f"{id(client):x}",
					)
					if isinstance(atom, HTTPRequest):
						req = atom
						if options.logRequests:
							event(req.method, req.path)
						req_count += 1
						if (
							req.protocol == "HTTP/1.0"
							or req.header("Connection") == "close"
						):
							keep_alive = False
						if await cls.SendResponse(req, handler, writer):
							res_count += 1
						else:
							warning("Sending Response Failed", Count=res_count)
							keep_alive = False
					elif atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Client=f"{id(client):x}")
						keep_alive = False
				iteration += 1
			if req_count != res_count:
				warning("Incomplete responses", Requests=req_count, Responses=res_count)
			elif status is HTTPProcessingStatus.NoData and read_count and not req_count:
				warning(
					"Client did not feed a complete request",
					ReadCount=read_count,
					Iterations=iteration,
				)
		except asyncio.CancelledError:
			# The server is shutting down, in-flight connections are aborted.
			raise
		except Exception as e:
			exception(e)
		finally:
			# The above loop takes care of keep alive, so we always close
			# the connection on exit.
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		handler: THandler,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Processes the request with the handler and sends the response using
		the given writer. Returns the response when it was sent."""
		res: HTTPResponse | None = None
		sent: bool = False
		done: bool = False
		try:
			res = await handler(request)
			await writer.write(res.head())
			sent = True
			await writer.write(res.body)
			done = True
		except (BrokenPipeError, ConnectionResetError):
			debug("Client closed connection early", Path=request.path)
			return None
		except Exception as e:
			exception(e)
			if sent:
				# The head is out, the connection can't be reused.
				return None
		finally:
			# A body that was not fully written still holds its file.
			if res is not None and not done:
				res.discard()
		if not sent:
			warning(
				"Server did not send a response",
				Method=request.method,
				Path=request.path,
			)
			try:
				await writer.write(SERVER_ERROR)
			except OSError as e:
				exception(e)
			return None
		return res

	@classmethod
	async def Serve(
		cls,
		handler: THandler,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine."""
		family = socket.AF_INET6 if ":" in options.host else socket.AF_INET
		server = socket.socket(family, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
		except OSError as e:
			error(
				f"Unable to bind to {options.host}:{options.port}, aborting.",
				"HOSTPORTERR",
			)
			server.close()
			raise e
		# The argument is the backlog of connections that will be accepted
		# before they are refused.
		server.listen(options.backlog)
		# This is what we need to use it with asyncio
		server.setblocking(False)

		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()

		state = ServerState()
		# Signal handlers can only be registered from the main thread.
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)

		info(
			"Server listening",
			Host=options.host,
			Port=server.getsockname()[1],
		)

		try:
			while state.isRunning:
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling
					)
				except (TimeoutError, asyncio.TimeoutError):
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(handler, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)


def run(config: Config, **options: Any) -> None:
	"""High level function to run the server with the given configuration."""
	server_options = ServerOptions(host=config.host, port=config.port)._replace(
		**options
	)
	handler: THandler = partial(serve, config)
	try:
		asyncio.run(AIOSocketServer.Serve(handler, server_options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
