"""
Exceptions raised by the post-processing stages.
"""

from typing import Optional


class PostprocessError(Exception):
    """Base exception for post-processing failures."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {base_msg}"
        return base_msg


class InvalidInputError(PostprocessError, ValueError):
    """Raised when model outputs are malformed or disagree on instance count."""


class UnknownClassError(PostprocessError, LookupError):
    """Raised when a surviving detection has no entry in the label table."""

    def __init__(self, class_id: int, stage: Optional[str] = "labels"):
        super().__init__(f"Class id {class_id} not found in label table", stage=stage)
        self.class_id = class_id
