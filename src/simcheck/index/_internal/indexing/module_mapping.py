"""Module path ↔ file path mapping utilities.

Shared between the definition extractor (qualified names, import
bindings) and the resolver (import-reachable files).  Converts between
dotted module paths (e.g. ``billing.invoice``) and repository paths
(e.g. ``src/billing/invoice.py``).

Module naming is best-effort: imports are resolved syntactically and the
resolver downgrades confidence for import-based matches rather than
trusting this mapping fully.
"""

from __future__ import annotations

import posixpath

from simcheck.index._internal.parsing.packs import get_pack_for_ext

# Leading directories that are layout conventions, not part of the module name
_LAYOUT_ROOTS: frozenset[str] = frozenset({"src", "lib"})

# File stems that stand for their directory
_PACKAGE_STEMS: frozenset[str] = frozenset({"__init__", "index"})


def _dotted(stem_path: str) -> str:
    parts = [p for p in stem_path.replace("\\", "/").split("/") if p and p != "."]
    if parts and parts[-1] in _PACKAGE_STEMS:
        parts = parts[:-1]
    if len(parts) > 1 and parts[0] in _LAYOUT_ROOTS:
        parts = parts[1:]
    return ".".join(parts)


def path_to_module(path: str) -> str | None:
    """Convert a repository file path to a dotted module path.

    Examples:
        >>> path_to_module("src/billing/invoice.py")
        'billing.invoice'
        >>> path_to_module("billing/__init__.py")
        'billing'
        >>> path_to_module("web/utils/index.js")
        'web.utils'
        >>> path_to_module("README.md")
    """
    dot_pos = path.rfind(".")
    if dot_pos < 0 or "/" in path[dot_pos:]:
        return None
    if get_pack_for_ext(path[dot_pos + 1 :]) is None:
        return None
    return _dotted(path[:dot_pos])


def package_of(path: str) -> str:
    """The dotted package a file lives in (its own name for ``__init__``/``index``)."""
    module = path_to_module(path) or ""
    stem = posixpath.splitext(posixpath.basename(path))[0]
    if stem in _PACKAGE_STEMS:
        return module
    return module.rpartition(".")[0]


def resolve_python_module(importing_path: str, module_text: str) -> str:
    """Resolve a (possibly relative) Python module reference to a dotted path.

    Examples:
        >>> resolve_python_module("src/billing/invoice.py", ".tax")
        'billing.tax'
        >>> resolve_python_module("src/billing/invoice.py", "..core.money")
        'core.money'
        >>> resolve_python_module("src/billing/invoice.py", "json")
        'json'
    """
    if not module_text.startswith("."):
        return module_text
    level = len(module_text) - len(module_text.lstrip("."))
    remainder = module_text[level:]
    package_parts = [p for p in package_of(importing_path).split(".") if p]
    if level > 1:
        package_parts = package_parts[: max(0, len(package_parts) - (level - 1))]
    if remainder:
        package_parts.append(remainder)
    return ".".join(package_parts)


def resolve_js_specifier(importing_path: str, specifier: str) -> str:
    """Resolve a JS/TS import specifier to a dotted module path.

    Relative specifiers are joined against the importing file's directory;
    bare package specifiers are returned dotted, unchanged otherwise.

    Examples:
        >>> resolve_js_specifier("src/app/main.js", "./utils/url")
        'app.utils.url'
        >>> resolve_js_specifier("src/app/main.ts", "../shared/index.ts")
        'shared'
    """
    if not specifier.startswith("."):
        return specifier.replace("/", ".")
    joined = posixpath.normpath(posixpath.join(posixpath.dirname(importing_path), specifier))
    stem, ext = posixpath.splitext(joined)
    if ext and get_pack_for_ext(ext) is not None:
        joined = stem
    return _dotted(joined)
