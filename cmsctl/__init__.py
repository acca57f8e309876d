__title__ = 'cmsctl'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .commands import *
from .configuration import *
from .faults import *
from .pipeline import *
from .prompts import *
from .synopsis import *
from .validation import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the command tree
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the configuration resolver
__all__ += configuration.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the invocation pipeline
__all__ += pipeline.__all__  # type: ignore[attr-defined]
# Load the exposed API of the prompter
__all__ += prompts.__all__  # type: ignore[attr-defined]
# Load the exposed API of the synopsis grammar
__all__ += synopsis.__all__  # type: ignore[attr-defined]
# Load the exposed API of the synopsis validator
__all__ += validation.__all__  # type: ignore[attr-defined]
