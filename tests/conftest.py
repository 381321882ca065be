import asyncio
from pathlib import Path

import pytest

from basicserve.config import Config
from basicserve.http.model import HTTPRequest, HTTPResponse
from basicserve.http.parser import parseTarget
from basicserve.serve import serve


def makeRequest(target: str, method: str = "GET") -> HTTPRequest:
	path, query = parseTarget(target)
	return HTTPRequest(method, path, query)


def get(config: Config, target: str, method: str = "GET") -> HTTPResponse:
	return asyncio.run(serve(config, makeRequest(target, method)))


def body(response: HTTPResponse) -> bytes:
	return asyncio.run(response.read())


@pytest.fixture
def root(tmp_path: Path) -> Path:
	"""A small tree to serve:

	a.txt, notes.md, bad.md, main.py, LICENSE, data.bin,
	docs/index.html, plain/{b.txt, "a b.txt", "c#d.txt", sub/}
	"""
	(tmp_path / "a.txt").write_bytes(b"hello")
	(tmp_path / "notes.md").write_text("# Hi\n")
	(tmp_path / "bad.md").write_bytes(b"# \xff\xfe\n")
	(tmp_path / "main.py").write_text("print('hello')\n")
	(tmp_path / "LICENSE").write_text("MIT\n")
	(tmp_path / "data.bin").write_bytes(bytes(range(256)))
	docs = tmp_path / "docs"
	docs.mkdir()
	(docs / "index.html").write_text("<h1>Docs</h1>")
	plain = tmp_path / "plain"
	plain.mkdir()
	(plain / "b.txt").write_text("b")
	(plain / "a b.txt").write_text("ab")
	(plain / "c#d.txt").write_text("cd")
	(plain / "sub").mkdir()
	return tmp_path


@pytest.fixture
def config(root: Path) -> Config:
	return Config.Make(root)


@pytest.fixture
def xconfig(root: Path) -> Config:
	return Config.Make(root, extensions=True)


# EOF
