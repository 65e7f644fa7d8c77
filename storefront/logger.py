"""Logging setup shared by the whole service."""
import logging

_root = logging.getLogger("storefront")
if not _root.handlers:
    h = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    h.setFormatter(fmt)
    _root.addHandler(h)
    _root.setLevel(logging.INFO)


def set_level(level: str):
    _root.setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    """Return a child of the ``storefront`` logger, e.g. ``get_logger("cart")``."""
    return _root.getChild(name)
