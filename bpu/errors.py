"""Shared exception base for the projection pipeline."""

from __future__ import annotations


class BPUError(RuntimeError):
    """Base class for errors raised while projecting a transaction.

    ``stage`` names the pipeline step that produced the error: ``"decode"``
    for transaction or script bytes, ``"derivation"`` for address recovery and
    ``"envelope"`` for inscription detection.
    """

    stage = "bpu"

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"
