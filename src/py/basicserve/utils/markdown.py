import re

from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

# Header ids are prefixed like GitHub does, so that deep links are stable
# and don't clash with the page's own ids.
HEADER_ID_PREFIX: str = "user-content-"

# SEE: https://github.github.com/gfm/#disallowed-raw-html-extension-
RE_DISALLOWED_TAG = re.compile(
	r"<(/?)(title|textarea|style|xmp|iframe|noembed|noframes|script|plaintext)(?=[\s/>]|$)",
	re.IGNORECASE,
)
RE_SLUG_STRIP = re.compile(r"[^\w\- ]")


def slugify(title: str) -> str:
	"""Creates a GitHub style header id: lowercase, punctuation removed and
	spaces replaced by dashes."""
	slug: str = RE_SLUG_STRIP.sub("", title.strip().lower()).replace(" ", "-")
	return f"{HEADER_ID_PREFIX}{slug}"


def tagfilter(html: str) -> str:
	"""Neutralizes the raw HTML tags that GFM disallows by escaping their
	opening bracket."""
	return RE_DISALLOWED_TAG.sub(lambda m: f"&lt;{m.group(1)}{m.group(2)}", html)


def parser() -> MarkdownIt:
	# The `gfm-like` preset is CommonMark with tables, strikethrough,
	# autolinks and raw HTML.
	return (
		MarkdownIt("gfm-like")
		.use(anchors_plugin, min_level=1, max_level=6, slug_func=slugify)
		.use(tasklists_plugin)
	)


MARKDOWN: MarkdownIt = parser()


def markdownToHTML(text: str) -> str:
	"""Renders markdown text to an HTML fragment. Fenced code blocks keep their
	language as a `language-*` class."""
	return tagfilter(MARKDOWN.render(text))


# EOF
