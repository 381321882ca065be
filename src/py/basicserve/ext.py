"""Developer extensions.

Extensions are given both the request and the outcome of regular file
serving, and have the opportunity to replace it with their own response. They
are an ordered list of rules, the first rule that matches wins:

- `markdown` renders `.md` files as HTML pages,
- `text` serves source-like files as `text/plain` so that browsers display
  them instead of downloading them,
- `listing` lists directories that have no `index.html`.
"""

import asyncio
import os
import stat
from pathlib import Path
from typing import Awaitable, Callable, NamedTuple

from .config import Config
from .errors import ErrorKind, Failure, TOutcome, respond
from .http.model import HTTPRequest, HTTPResponse
from .paths import localPathForRequest
from .template import renderPage
from .utils.htmpl import H, Node
from .utils.logging import debug, warning
from .utils.markdown import markdownToHTML
from .utils.uri import decodePath, encodePath

TEXT_EXTENSIONS: frozenset[str] = frozenset(
	"""\
c cc cfg cpp csv fst h ini java md mk proto py pyi rb rs rst sh toml txt yml\
""".split()
)

TEXT_FILES: frozenset[str] = frozenset(
	"""\
.editorconfig .gitattributes .gitignore .mailmap AUTHORS CODE_OF_CONDUCT
CONTRIBUTING COPYING COPYRIGHT Cargo.lock Dockerfile LICENSE LICENSE-APACHE
LICENSE-MIT MANIFEST.in Makefile Pipfile rust-toolchain\
""".split()
)

# -----------------------------------------------------------------------------
#
# RULES
#
# -----------------------------------------------------------------------------


class ExtContext(NamedTuple):
	"""What the extension rules are given to decide and act."""

	config: Config
	request: HTTPRequest
	# The local path for the request, without `index.html` substitution
	path: Path
	outcome: TOutcome


class Rule(NamedTuple):
	name: str
	matches: Callable[[ExtContext], bool]
	apply: Callable[[ExtContext], Awaitable[TOutcome]]


async def serve(config: Config, request: HTTPRequest, outcome: TOutcome) -> TOutcome:
	"""The entry point to extensions, which returns the outcome unchanged
	when extensions are disabled or when no rule matches."""
	if not config.extensions:
		return outcome
	debug("Checking extensions", Path=request.path)
	path = localPathForRequest(request.path, config.root)
	if isinstance(path, Failure):
		discard(outcome)
		return path
	context = ExtContext(config, request, path, outcome)
	for rule in RULES:
		if rule.matches(context):
			debug("Using extension", Extension=rule.name)
			return await rule.apply(context)
	return outcome


def discard(outcome: TOutcome) -> None:
	if isinstance(outcome, HTTPResponse):
		outcome.discard()


# -----------------------------------------------------------------------------
#
# MARKDOWN
#
# -----------------------------------------------------------------------------


def isMarkdown(context: ExtContext) -> bool:
	return context.path.suffix == ".md"


async def renderMarkdown(context: ExtContext) -> TOutcome:
	"""Loads a markdown file and renders it like GitHub does, regardless of
	what regular file serving produced."""
	discard(context.outcome)
	try:
		data: bytes = await asyncio.to_thread(context.path.read_bytes)
	except OSError as e:
		return Failure.Io(e)
	try:
		text: str = data.decode("utf-8")
	except UnicodeDecodeError as e:
		return Failure(ErrorKind.MarkdownUtf8, e)
	page = renderPage(context.path.name, markdownToHTML(text))
	if isinstance(page, Failure):
		return page
	return respond(page, contentType="text/html")


# -----------------------------------------------------------------------------
#
# TEXT
#
# -----------------------------------------------------------------------------


def isTextFile(name: str) -> bool:
	"""Tells if the file name has a text extension or is a well known text
	file (`LICENSE`, `Makefile`, …)."""
	# A dotless name is taken whole as its extension, so a file named `sh` matches.
	return name.rsplit(".", 1)[-1] in TEXT_EXTENSIONS or name in TEXT_FILES


def isServedTextFile(context: ExtContext) -> bool:
	outcome = context.outcome
	return (
		isinstance(outcome, HTTPResponse)
		and outcome.status == 200
		and isTextFile(decodePath(context.request.path.rsplit("/", 1)[-1]))
	)


async def convertToText(context: ExtContext) -> TOutcome:
	outcome = context.outcome
	if isinstance(outcome, HTTPResponse):
		outcome.setHeader("Content-Type", "text/plain")
	return outcome


# -----------------------------------------------------------------------------
#
# DIRECTORY LISTING
#
# -----------------------------------------------------------------------------


class DirEntry(NamedTuple):
	"""An entry in a directory listing, `isParent` marks the synthetic
	`..` entry."""

	path: Path
	isParent: bool = False


def isMissing(context: ExtContext) -> bool:
	outcome = context.outcome
	return isinstance(outcome, Failure) and outcome.isNotFound


async def maybeListDir(context: ExtContext) -> TOutcome:
	"""Lists the directory when the requested path is one (which means it
	has no `index.html`), otherwise keeps the original failure."""
	try:
		st = await asyncio.to_thread(os.stat, context.path)
	except OSError as e:
		return Failure.Io(e)
	if stat.S_ISDIR(st.st_mode):
		return await listDir(context.config.root, context.path)
	else:
		return context.outcome


def dirEntries(path: Path) -> list[DirEntry]:
	"""Returns the parent entry followed by the children, sorted by the
	bytes of their path."""
	children: list[Path] = sorted(
		(path / _ for _ in os.listdir(path)), key=lambda _: os.fsencode(_)
	)
	return [DirEntry(path / "..", True)] + [DirEntry(_) for _ in children]


async def listDir(root: Path, path: Path) -> TOutcome:
	"""Lists the contents of a directory as an HTML page."""
	try:
		entries: list[DirEntry] = await asyncio.to_thread(dirEntries, path)
	except OSError as e:
		return Failure.Io(e)
	try:
		body = makeDirListBody(root, entries)
	except (TypeError, ValueError) as e:
		return Failure(ErrorKind.WriteInDirList, e)
	if isinstance(body, Failure):
		return body
	relative: str = path.relative_to(root).as_posix()
	page = renderPage("/" if relative == "." else f"/{relative}/", body)
	if isinstance(page, Failure):
		return page
	return respond(page, contentType="text/html")


def makeDirListBody(root: Path, entries: list[DirEntry]) -> Node | Failure:
	"""Creates one link per entry, each link being absolute from the root.
	Entries that can't be represented as UTF-8 are skipped."""
	links: list[Node] = []
	for entry in entries:
		try:
			url: str = entry.path.relative_to(root).as_posix()
		except ValueError as e:
			return Failure(ErrorKind.StripPrefixInDirList, e)
		name: str = ".." if entry.isParent else entry.path.name
		if not name:
			warning("Path without file name", Path=str(entry.path))
			continue
		try:
			name.encode("utf-8")
		except UnicodeEncodeError:
			warning("Non-unicode path", Path=repr(name))
			continue
		try:
			href: str = encodePath(url)
		except UnicodeEncodeError:
			warning("Non-unicode url", URL=repr(url))
			continue
		links.append(H.div(H.a(name, href=f"/{href}")))
	return H.div(links)


RULES: list[Rule] = [
	Rule("markdown", isMarkdown, renderMarkdown),
	Rule("text", isServedTextFile, convertToText),
	Rule("listing", isMissing, maybeListDir),
]

# EOF
