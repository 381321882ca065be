from basicserve.config import Config

from conftest import body, get


def test_serves_file(config: Config):
	res = get(config, "/a.txt")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/plain"
	assert res.getHeader("Content-Length") == "5"
	assert body(res) == b"hello"


def test_serves_binary_file(config: Config):
	res = get(config, "/data.bin")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "application/octet-stream"
	assert res.getHeader("Content-Length") == "256"
	assert body(res) == bytes(range(256))


def test_unknown_type_defaults_to_octet_stream(config: Config):
	res = get(config, "/LICENSE")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "application/octet-stream"
	assert body(res) == b"MIT\n"


def test_query_is_ignored(config: Config):
	res = get(config, "/a.txt?v=2")
	assert res.status == 200
	assert body(res) == b"hello"


def test_directory_redirect(config: Config):
	res = get(config, "/docs")
	assert res.status == 302
	assert res.getHeader("Location") == "/docs/"
	assert res.getHeader("Content-Length") == "0"
	assert body(res) == b""


def test_directory_redirect_keeps_query(config: Config):
	res = get(config, "/docs?x=1")
	assert res.status == 302
	assert res.getHeader("Location") == "/docs/?x=1"
	res = get(config, "/docs?")
	assert res.getHeader("Location") == "/docs/?"


def test_directory_index(config: Config):
	res = get(config, "/docs/")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/html"
	assert body(res) == b"<h1>Docs</h1>"


def test_not_found(config: Config):
	res = get(config, "/missing")
	assert res.status == 404
	assert res.getHeader("Content-Type") == "text/html"
	assert "404 Not Found" in res.text()


def test_directory_without_index_is_not_found(config: Config):
	assert get(config, "/plain/").status == 404


def test_method_not_allowed(config: Config):
	for method in ("POST", "HEAD", "DELETE"):
		res = get(config, "/a.txt", method)
		assert res.status == 405
		assert res.getHeader("Allow") == "GET"
		assert "405 Method Not Allowed" in res.text()


def test_outside_root_is_not_found(config: Config):
	assert get(config, "/../a.txt").status == 404
	assert get(config, "/%2e%2e/%2e%2e/etc/passwd").status == 404


def test_invalid_paths_are_server_errors(config: Config):
	assert get(config, "/%FF").status == 500
	assert get(config, "/a%00.txt").status == 500


def test_repeated_requests_are_identical(config: Config):
	a = get(config, "/a.txt")
	b = get(config, "/a.txt")
	assert (a.status, a.headers.headers) == (b.status, b.headers.headers)
	assert body(a) == body(b)


# EOF
