# gpglm/__init__.py

from . import config
from . import num
from . import errors
from . import kernel
from . import core
from . import modeldiagnosis
from .config import GLMConfig, __version__
from .core import GLMAlgorithm, GLMResult

__all__ = ["num", "kernel", "core", "GLMConfig", "GLMAlgorithm", "GLMResult", "__version__"]
