"""Ready-made request and response handlers."""

from httpipe.handlers.block_path import BlockPathHandler
from httpipe.handlers.body_replace import BodyReplaceHandler
from httpipe.handlers.error_page import ErrorPageHandler
from httpipe.handlers.header_rewrite import HeaderRewriteHandler

__all__ = [
    "BlockPathHandler",
    "BodyReplaceHandler",
    "ErrorPageHandler",
    "HeaderRewriteHandler",
]
