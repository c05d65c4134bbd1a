"""Turn a route's handler reference into something callable.

A route may hold the handler itself, or a reference the router resolves at
dispatch time, optionally loading it from a source file:

    handler                          returned as-is
    "package.module:func"            imported
    "func" + source="handlers.py"    loaded from that file
    (SomeClass, "method")            bound, instantiating SomeClass()
    ("SomeClass", "method") + source class looked up in the file first
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
import threading
from functools import cache
from pathlib import Path
from types import ModuleType
from typing import Any

from hookmux.errors import HandlerResolutionError
from hookmux.table import Handler, HandlerRef

logger = logging.getLogger(__name__)

_load_lock = threading.RLock()


def load_source(source: str) -> ModuleType:
    """Execute the Python file at *source* once and return it as a module.

    Sources load on first dispatch, so concurrent first dispatches are
    serialised: the file runs once and is registered in sys.modules once.
    """
    with _load_lock:
        return _load_source(source)


@cache
def _load_source(source: str) -> ModuleType:
    path = Path(source).resolve()
    if not path.is_file():
        msg = f"handler source {source!r} does not exist"
        raise HandlerResolutionError(msg)
    module_name = f"_hookmux_source_{abs(hash(str(path))):x}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        msg = f"cannot load handler source {source!r}"
        raise HandlerResolutionError(msg)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[module_name]
        raise
    logger.debug("loaded handler source %s as %s", path, module_name)
    return module


def _lookup(obj: Any, dotted: str, ref: object) -> Any:
    for attr in dotted.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            msg = f"cannot resolve handler {ref!r}: no attribute {attr!r}"
            raise HandlerResolutionError(msg) from e
    return obj


def _resolve_name(name: str, source: str | None) -> Any:
    if source is not None:
        return _lookup(load_source(source), name, name)
    module_path, sep, attr = name.partition(":")
    if not sep:
        msg = f"handler {name!r} needs a 'module:attribute' form or a source file"
        raise HandlerResolutionError(msg)
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        msg = f"cannot import {module_path!r} for handler {name!r}"
        raise HandlerResolutionError(msg) from e
    return _lookup(module, attr, name)


def resolve_callback(handler: HandlerRef, source: str | None = None) -> Handler:
    """Resolve *handler*, loading from *source* when given.

    Raises ``HandlerResolutionError`` when the reference cannot be found or
    does not resolve to a callable.
    """
    if isinstance(handler, tuple):
        owner, method = handler
        if isinstance(owner, str):
            owner = _resolve_name(owner, source)
        if isinstance(owner, type):
            owner = owner()
        resolved = _lookup(owner, method, handler)
    elif isinstance(handler, str):
        resolved = _resolve_name(handler, source)
    else:
        resolved = handler

    if not callable(resolved):
        msg = f"handler {handler!r} resolved to non-callable {resolved!r}"
        raise HandlerResolutionError(msg)
    return resolved
