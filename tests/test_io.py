from basicserve.utils.io import LineParser, asBytes


def test_lines_across_chunks():
	parser = LineParser()
	lines: list[bytes] = []
	for chunk in [
		b"GET /time/5 HTTP/1.1\r\nHost: 127.0.0.1\r\nConnection: close",
		b"\r\n\r",
		b"\n",
	]:
		offset: int = 0
		while offset < len(chunk):
			line, read = parser.feed(chunk, offset)
			offset += read
			if line is not None:
				lines.append(line)
	assert lines == [
		b"GET /time/5 HTTP/1.1",
		b"Host: 127.0.0.1",
		b"Connection: close",
		b"",
	]


def test_incomplete_line_is_buffered():
	parser = LineParser()
	assert parser.feed(b"partial") == (None, 7)
	assert parser.feed(b" line\r\n") == (b"partial line", 7)


def test_asBytes():
	assert asBytes("é") == "é".encode("utf8")
	assert asBytes(bytearray(b"ab")) == b"ab"
	assert asBytes(None) == b""


# EOF
