"""Shared types and validation helpers for resources.

This module contains:
- Validation mode type (shared across all resources)
- Common validation normalizers (ID sequences, etc.)
"""

from __future__ import annotations

from typing import Literal, Sequence

from ..utils import unique_in_order

# --- Shared Validation Mode --- #
ValidationMode = Literal["off", "warn", "strict"]


# --- ID Sequence Normalization --- #
def _normalize_id_sequence(ids: str | int | Sequence[str | int] | object) -> list[str] | None:
    """Normalize a single ID or a sequence of IDs to a deduplicated string list.

    Parameters
    ----------
    ids
        Single ID or sequence of IDs. Integers are accepted and converted.

    Returns
    -------
    list[str] | None
        Deduplicated, non-empty string IDs in input order, or None if:
        - Input is not a str, int or sequence (bytes are rejected)
        - No valid IDs remain after dropping blanks and non-scalars
    """
    if isinstance(ids, bool):
        return None
    if isinstance(ids, (str, int)):
        id_list: list[object] = [ids]
    elif isinstance(ids, Sequence) and not isinstance(ids, bytes):
        id_list = list(ids)
    else:
        return None

    valid_ids = [
        str(id_val).strip()
        for id_val in id_list
        if isinstance(id_val, (str, int)) and not isinstance(id_val, bool) and str(id_val).strip()
    ]
    if not valid_ids:
        return None

    return unique_in_order(valid_ids)
