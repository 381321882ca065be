import mimetypes
from pathlib import Path

mimetypes.init()

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

# Overrides for types that the platform's MIME database tends to get wrong
# or to lack.
MIME_TYPES: dict[str, str] = dict(
	bz2="application/x-bzip",
	gz="application/x-gzip",
	js="text/javascript",
	mjs="text/javascript",
	wasm="application/wasm",
	webmanifest="application/manifest+json",
)


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path's extension, defaulting
	to `application/octet-stream`."""
	name: str = Path(path).name
	ext: str | None = name.rsplit(".", 1)[-1].lower() if "." in name else None
	return (
		res
		if ext and (res := MIME_TYPES.get(ext))
		else mimetypes.guess_type(name)[0] or DEFAULT_CONTENT_TYPE
	)


# EOF
