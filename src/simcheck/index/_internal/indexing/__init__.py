"""Module-path mapping shared by extraction and resolution."""

from simcheck.index._internal.indexing.module_mapping import (
    package_of,
    path_to_module,
    resolve_js_specifier,
    resolve_python_module,
)

__all__ = [
    "package_of",
    "path_to_module",
    "resolve_js_specifier",
    "resolve_python_module",
]
