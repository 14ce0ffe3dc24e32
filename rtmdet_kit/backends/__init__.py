"""
Optional inference backends for rtmdet_kit.

Backends are kept in a separate module so core functionality (pre/post-processing)
stays lightweight and can be used without installing inference runtimes.

Every backend's `infer(blob)` returns `(boxes_and_scores, class_ids, masks)`.
"""

from __future__ import annotations

__all__ = []
