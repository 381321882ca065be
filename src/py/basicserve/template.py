from .errors import ErrorKind, Failure
from .http.status import statusLine
from .utils.htmpl import H, Node, html, raw

# --
# The page template used for every HTML page the server produces: rendered
# markdown, directory listings and error pages.

PAGE_CSS: str = """
:root {
    font-family: sans-serif;
    font-size: 14px;
    line-height: 1.35em;
    background: #F0F0F0;
}
body {
    max-width: 980px;
    margin: 0 auto;
    padding: 20px;
}
pre {
    background: #FFFFFF;
    padding: 10px;
    overflow: auto;
}
table {
    border-collapse: collapse;
}
td, th {
    border: 1px solid #D0D0D0;
    padding: 4px 8px;
}
"""


def renderHTML(title: str, body: str | Node) -> str:
	"""Renders a full HTML page. A `str` body is taken as an already rendered
	(and trusted) HTML fragment, the title is always escaped."""
	return "".join(
		html(
			H.html(
				H.head(
					H.meta(charset="utf-8"),
					H.meta(
						name="viewport",
						content="width=device-width, initial-scale=1.0",
					),
					H.title(title),
					H.style(raw(PAGE_CSS)),
				),
				H.body(raw(body) if isinstance(body, str) else body),
			),
			doctype="html",
		)
	)


def renderErrorHTML(status: int) -> str:
	"""Renders the page for an error status, which only displays the
	status text."""
	title = statusLine(status)
	return renderHTML(title, H.h1(title))


def renderPage(title: str, body: str | Node) -> str | Failure:
	"""Like `renderHTML`, but returns a `TemplateRender` failure instead of
	raising."""
	try:
		return renderHTML(title, body)
	except (KeyError, TypeError, ValueError) as e:
		return Failure(ErrorKind.TemplateRender, e)


def renderErrorPage(status: int) -> str | Failure:
	try:
		return renderErrorHTML(status)
	except (KeyError, TypeError, ValueError) as e:
		return Failure(ErrorKind.TemplateRender, e)


# EOF
