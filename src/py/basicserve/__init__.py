from .config import Config, VERSION  # NOQA: F401
from .http.model import HTTPRequest, HTTPResponse  # NOQA: F401
from .serve import serve  # NOQA: F401
from .server import run  # NOQA: F401

__version__: str = VERSION

# EOF
