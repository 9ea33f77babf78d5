"""De-duplicating merge of per-strategy extraction results."""

from __future__ import annotations

from typing import List, Optional, Sequence, Set, Tuple

from .models import IdentityKey, ReviewRecord


def merge_strategy_results(results: Sequence[Sequence[ReviewRecord]]) -> List[ReviewRecord]:
    """Merge strategy outputs given in priority order (highest first).

    The highest-priority non-empty result is taken as-is. Records from the
    remaining results are appended unless they duplicate an accepted record,
    either by the ``(date_text, text, id)`` identity key or, since strategies
    read ids from different attributes, by ``(date_text, text)`` alone. The
    first accepted copy wins, so ids come from the higher-priority strategy.

    Records whose identity key is empty are never treated as duplicates of
    one another; only the very same record object is skipped when it shows
    up twice.

    Args:
        results: One record list per strategy, highest priority first

    Returns:
        Merged records; empty only when every strategy found nothing
    """
    ordered = [list(records) for records in results]
    base_index = next((index for index, records in enumerate(ordered) if records), None)
    if base_index is None:
        return []

    merged: List[ReviewRecord] = []
    identities: Set[IdentityKey] = set()
    contents: Set[Tuple[str, str]] = set()
    accepted_objects: Set[int] = set()

    def accept(record: ReviewRecord, identity: Optional[IdentityKey]) -> None:
        merged.append(record)
        accepted_objects.add(id(record))
        if identity is not None:
            identities.add(identity)
        content = record.content_key()
        if content is not None:
            contents.add(content)

    for record in ordered[base_index]:
        accept(record, record.identity_key())

    for records in ordered[base_index + 1:]:
        for record in records:
            if id(record) in accepted_objects:
                continue
            identity = record.identity_key()
            if identity is not None:
                if identity in identities:
                    continue
                content = record.content_key()
                if content is not None and content in contents:
                    continue
            accept(record, identity)

    return merged
