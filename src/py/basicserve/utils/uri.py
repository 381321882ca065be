from urllib.parse import quote, unquote

# SEE: https://url.spec.whatwg.org/#fragment-percent-encode-set
# C0 controls, DEL and non-ASCII are always encoded by `quote`, these are
# the printable characters that are encoded on top.
FRAGMENT_SET: str = ' "<>`'
PATH_SET: str = FRAGMENT_SET + "#?{}"

# Everything printable that is not in the path set is left as-is.
PATH_SAFE: str = "".join(
	_ for _ in (chr(c) for c in range(0x21, 0x7F)) if _ not in PATH_SET
)


def encodePath(path: str) -> str:
	"""Percent-encodes a path so that it can be embedded in a link. Raises
	`UnicodeEncodeError` when the path is not valid Unicode, which happens
	with file names that are not UTF-8."""
	return quote(path, safe=PATH_SAFE, errors="strict")


def decodePath(path: str) -> str:
	return unquote(path, errors="strict")


# EOF
