"""
Transform Module Loader

A transform module is an ordinary Python file that defines::

    def transform_html(html: str) -> str:
        ...

The file is imported by path, so it does not need to be on sys.path.
"""

from pathlib import Path
from typing import Callable, Union
import hashlib
import importlib.util
import logging
import sys

logger = logging.getLogger(__name__)

TRANSFORM_FUNCTION_NAME = "transform_html"

TransformFunction = Callable[[str], str]


def validate_module_exists(module_path: Union[str, Path]) -> Path:
    """
    Resolve a transform module path and check that the file exists.

    Returns:
        Absolute path to the module

    Raises:
        FileNotFoundError: If the path does not point to a file
    """
    path = Path(module_path).expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(f"Module not found at path: {module_path}")
    return path


def _module_name_for(path: Path) -> str:
    # Unique per file so two transforms named e.g. "transform.py" never collide
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    return f"mdx_transform._loaded.{path.stem}_{digest}"


def load_transform_function(module_path: Union[str, Path]) -> TransformFunction:
    """
    Import a transform module from its file path and return transform_html.

    Args:
        module_path: Path to the Python file

    Returns:
        The module's transform_html callable

    Raises:
        FileNotFoundError: If the file does not exist
        ImportError: If the file cannot be loaded as a module
        TypeError: If the module has no callable transform_html
    """
    path = validate_module_exists(module_path)
    module_name = _module_name_for(path)

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load transform module from {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        logger.error(f"Error executing transform module {path}")
        raise

    transform = getattr(module, TRANSFORM_FUNCTION_NAME, None)
    if not callable(transform):
        raise TypeError(
            f"Module {path} must export a function with the signature: "
            f"{TRANSFORM_FUNCTION_NAME}(html: str) -> str"
        )

    logger.debug(f"Loaded {TRANSFORM_FUNCTION_NAME} from {path}")
    return transform
