"""Exceptions raised while building or querying a filter tree.

- InvalidInputError: the training or prediction data is unusable (subclass of
  ValueError).
- TransformError: a node's transform failed to clone, fit, or apply (subclass
  of RuntimeError). The original exception is chained as ``__cause__``.
"""

from __future__ import annotations


class InvalidInputError(ValueError):
    """Raised when a dataset or example cannot be used by the tree."""


class TransformError(RuntimeError):
    """Raised when a node transform fails during fitting or application.

    Attributes:
        stage (str): Which step failed: ``"clone"``, ``"fit"`` or ``"apply"``.
        transform_name (str): Class name of the offending transform.
    """

    stage: str
    transform_name: str

    def __init__(self, stage: str, transform_name: str, detail: str) -> None:
        super().__init__(f"Transform {transform_name} failed during {stage}: {detail}")
        self.stage = stage
        self.transform_name = transform_name
