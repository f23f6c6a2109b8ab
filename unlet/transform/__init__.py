# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source transforms. Passes read the annotated tree and request text insertions
through a TextAlter; output text is rendered once at the end.
"""

from .alter import TextAlter
from .loop_closures import LoopClosures, find_body_blocker

__all__ = ["LoopClosures", "TextAlter", "find_body_blocker"]
