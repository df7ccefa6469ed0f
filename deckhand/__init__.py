__title__ = 'deckhand'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.1.0"

from .app import *
from .commands import *
from .configuration import *
from .dispatcher import *
from .faults import *
from .logs import *
from .program import *
from .registrar import *
from .services import *
from .settings import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 1, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of every public module
__all__ += app.__all__  # type: ignore[attr-defined]
__all__ += commands.__all__  # type: ignore[attr-defined]
__all__ += configuration.__all__  # type: ignore[attr-defined]
__all__ += dispatcher.__all__  # type: ignore[attr-defined]
__all__ += faults.__all__  # type: ignore[attr-defined]
__all__ += logs.__all__  # type: ignore[attr-defined]
__all__ += program.__all__  # type: ignore[attr-defined]
__all__ += registrar.__all__  # type: ignore[attr-defined]
__all__ += services.__all__  # type: ignore[attr-defined]
__all__ += settings.__all__  # type: ignore[attr-defined]
