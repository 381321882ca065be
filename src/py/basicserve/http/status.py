from http import HTTPStatus

# Maps status codes to their reason phrase, ie. `404` to `Not Found`.
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}


def statusLine(status: int) -> str:
	"""Returns the status as `404 Not Found`, which is what error pages
	display."""
	return f"{status} {HTTP_STATUS.get(status, 'Unknown status')}"


# EOF
