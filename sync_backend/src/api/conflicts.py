from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List


class Winner(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class Verdict:
    winner: Winner
    reason: str


# PUBLIC_INTERFACE
def resolve(local_updated_at: int, remote_updated_at: int) -> Verdict:
    """
    Last-write-wins decision between a client version and the stored version.

    The client version wins only when its timestamp is strictly newer; on a tie
    the server keeps its row. Record content is never consulted.
    """
    if local_updated_at > remote_updated_at:
        return Verdict(Winner.LOCAL, f"Local timestamp ({local_updated_at}) > remote ({remote_updated_at})")
    if local_updated_at == remote_updated_at:
        return Verdict(Winner.REMOTE, f"Timestamps equal ({local_updated_at}). Server wins by authority.")
    return Verdict(Winner.REMOTE, f"Remote timestamp ({remote_updated_at}) > local ({local_updated_at})")


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ConflictResolution:
    """One resolver decision, as reported back to the pushing client."""

    record_id: str
    collection: str
    winner: Winner
    local_updated_at: int
    remote_updated_at: int
    reason: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "recordId": self.record_id,
            "collection": self.collection,
            "winner": self.winner.value,
            "localUpdatedAt": self.local_updated_at,
            "remoteUpdatedAt": self.remote_updated_at,
            "reason": self.reason,
        }


# PUBLIC_INTERFACE
class ConflictLedger:
    """
    Ordered accumulator of every resolution made during one push.

    A fresh ledger is created per push and passed through the pipeline, so
    concurrent pushes never share entries.
    """

    def __init__(self) -> None:
        self._entries: List[ConflictResolution] = []

    def record(
        self,
        collection: str,
        record_id: str,
        local_updated_at: int,
        remote_updated_at: int,
    ) -> ConflictResolution:
        """Resolve, append the outcome and return it."""
        verdict = resolve(local_updated_at, remote_updated_at)
        entry = ConflictResolution(
            record_id=record_id,
            collection=collection,
            winner=verdict.winner,
            local_updated_at=local_updated_at,
            remote_updated_at=remote_updated_at,
            reason=verdict.reason,
        )
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> List[ConflictResolution]:
        return list(self._entries)

    def summary(self) -> Dict[str, int]:
        counts = {w.value: 0 for w in Winner}
        for entry in self._entries:
            counts[entry.winner.value] += 1
        return counts

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConflictResolution]:
        return iter(self._entries)
