import argparse
from pathlib import Path

import pytest

import basicserve.__main__ as cli
from basicserve.config import HOST, PORT, Config


def test_parseAddress():
	assert cli.parseAddress("127.0.0.1:4000") == ("127.0.0.1", 4000)
	assert cli.parseAddress("0.0.0.0:80") == ("0.0.0.0", 80)
	assert cli.parseAddress("[::1]:8080") == ("::1", 8080)


@pytest.mark.parametrize("text", ["localhost:4000", "127.0.0.1", "127.0.0.1:http", "1.2.3.4:70000"])
def test_parseAddress_invalid(text: str):
	with pytest.raises(argparse.ArgumentTypeError, match="failed to parse IP address"):
		cli.parseAddress(text)


def test_defaults():
	options = cli.parser().parse_args([])
	assert options.addr == (HOST, PORT)
	assert options.root == "."
	assert not options.extensions
	assert not options.verbose


def test_options():
	options = cli.parser().parse_args(["-x", "-a", "127.0.0.1:8000", "site"])
	assert options.addr == ("127.0.0.1", 8000)
	assert options.root == "site"
	assert options.extensions


def test_main_missing_root(tmp_path: Path):
	assert cli.main([str(tmp_path / "missing")]) == 1


def test_main_runs_server(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
	configs: list[Config] = []
	monkeypatch.setattr(cli, "run", configs.append)
	assert cli.main(["-x", "--addr", "127.0.0.1:8000", str(tmp_path)]) == 0
	assert configs == [
		Config(root=tmp_path, extensions=True, host="127.0.0.1", port=8000)
	]


def test_main_bind_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
	def run(config: Config) -> None:
		raise OSError(98, "Address already in use")

	monkeypatch.setattr(cli, "run", run)
	assert cli.main([str(tmp_path)]) == 1


def test_config_normalizes_root(tmp_path: Path):
	config = Config.Make(tmp_path / "a" / ".." / "b")
	assert config.root == tmp_path / "b"
	assert not config.extensions


# EOF
