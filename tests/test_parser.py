from basicserve.http.model import HTTPProcessingStatus, HTTPRequest
from basicserve.http.parser import HTTPParser, parseTarget


def requests(*chunks: bytes) -> list[HTTPRequest]:
	parser = HTTPParser()
	return [
		atom
		for chunk in chunks
		for atom in parser.feed(chunk)
		if isinstance(atom, HTTPRequest)
	]


def test_request_in_chunks():
	reqs = requests(
		b"GET /time/5 ",
		b"HTTP/1.1\r\nHost: ",
		b"127.0.0.1\r",
		b"\nConn",
		b"ection: close\r\n",
		b"\r",
		b"\n",
	)
	assert len(reqs) == 1
	req = reqs[0]
	assert req.method == "GET"
	assert req.path == "/time/5"
	assert req.query is None
	assert req.protocol == "HTTP/1.1"
	assert req.header("host") == "127.0.0.1"
	assert req.header("Connection") == "close"


def test_pipelined_requests():
	reqs = requests(b"GET /a HTTP/1.1\r\n\r\nGET /b?x=1 HTTP/1.1\r\n\r\n")
	assert [(_.path, _.query) for _ in reqs] == [("/a", None), ("/b", "x=1")]


def test_request_with_body():
	reqs = requests(
		b"POST /form HTTP/1.1\r\nContent-Length: 5\r\n\r\nhel", b"lo"
	)
	assert len(reqs) == 1
	assert reqs[0].method == "POST"
	assert reqs[0].body is not None
	assert reqs[0].body.payload == b"hello"


def test_repeated_headers_are_combined():
	(req,) = requests(b"GET / HTTP/1.1\r\nAccept: a\r\naccept: b\r\n\r\n")
	assert req.header("Accept") == "a, b"


def test_tls_handshake_is_skipped():
	handshake = bytes([0x16, 0x03, 0x01, 0x00, 0x02, 0xAA, 0xBB])
	(req,) = requests(handshake + b"GET / HTTP/1.1\r\n\r\n")
	assert req.path == "/"


def test_malformed_request_line():
	parser = HTTPParser()
	atoms = list(parser.feed(b"GARBAGE\r\n\r\n"))
	assert HTTPProcessingStatus.BadFormat not in atoms
	(req,) = [_ for _ in atoms if isinstance(_, HTTPRequest)]
	assert req.method == "GARBAGE"
	assert req.protocol == "HTTP/1.0"


def test_parseTarget():
	assert parseTarget("/a/b") == ("/a/b", None)
	assert parseTarget("/a/b?") == ("/a/b", "")
	assert parseTarget("/a/b?x=1&y") == ("/a/b", "x=1&y")
	assert parseTarget("http://localhost:4000/docs?x") == ("/docs", "x")
	assert parseTarget("http://localhost:4000") == ("/", None)


# EOF
