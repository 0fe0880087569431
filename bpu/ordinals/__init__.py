"""Ordinal-style inscription envelopes carried in output scripts.

This subpackage works on the raw token tree of each output and does not use
the tape/cell projection.
"""

from bpu.ordinals.inscriptions import (
    ORD_TAG,
    InscriptionCollection,
    InscriptionNotFoundError,
    OrdData,
    OrdinalInscriptionDecoder,
    extract_inscription,
    find_inscriptions,
    handler,
    locate_envelope,
    script_checker,
)

__all__ = [
    "ORD_TAG",
    "InscriptionCollection",
    "InscriptionNotFoundError",
    "OrdData",
    "OrdinalInscriptionDecoder",
    "extract_inscription",
    "find_inscriptions",
    "handler",
    "locate_envelope",
    "script_checker",
]
