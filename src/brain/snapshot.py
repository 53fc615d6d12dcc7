# src/brain/snapshot.py
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple


class PriorityTier(Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class PeerView:
    """
    Read-only projection of a connected peer.

    Attributes:
        handle (str): opaque identity, stable for the connection lifetime
        tier (PriorityTier): priority tier currently applied by the transport
        country_code (Optional[str]): ISO country code, when known
    """
    handle: str
    tier: PriorityTier = PriorityTier.NORMAL
    country_code: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.handle, str) or not self.handle:
            raise ValueError(f"Invalid peer handle: {self.handle!r}")
        if not isinstance(self.tier, PriorityTier):
            object.__setattr__(self, 'tier', PriorityTier(self.tier))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handle": self.handle,
            "tier": self.tier.value,
            "country_code": self.country_code
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PeerView':
        return cls(
            handle=data["handle"],
            tier=PriorityTier(data.get("tier", PriorityTier.NORMAL.value)),
            country_code=data.get("country_code")
        )


@dataclass(frozen=True)
class SwarmSnapshot:
    """
    Immutable view of the swarm for a single tick.

    Attributes:
        peers (Tuple[PeerView, ...]): connected peers, in producer order
        progress_percent (float): download progress, 0.0-100.0
        download_rate (int): current download rate in bytes/sec
        tick (int): sequence number assigned by the producer
    """
    peers: Tuple[PeerView, ...] = ()
    progress_percent: float = 0.0
    download_rate: int = 0
    tick: int = 0
    _handles: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        peers = tuple(self.peers)
        for peer in peers:
            if not isinstance(peer, PeerView):
                raise ValueError(f"Invalid peer entry: {peer!r}")

        handles = frozenset(peer.handle for peer in peers)
        if len(handles) != len(peers):
            raise ValueError("Duplicate peer handles in snapshot")

        progress = float(self.progress_percent)
        if not 0.0 <= progress <= 100.0:
            raise ValueError(f"Progress out of range: {self.progress_percent}")

        if isinstance(self.download_rate, bool) or not isinstance(self.download_rate, int):
            raise ValueError(f"Download rate must be an integer: {self.download_rate!r}")
        if self.download_rate < 0:
            raise ValueError(f"Download rate must be non-negative: {self.download_rate}")

        object.__setattr__(self, 'peers', peers)
        object.__setattr__(self, 'progress_percent', progress)
        object.__setattr__(self, '_handles', handles)

    @property
    def peer_count(self) -> int:
        return len(self.peers)

    @property
    def peer_handles(self) -> FrozenSet[str]:
        return self._handles

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "progress_percent": self.progress_percent,
            "download_rate": self.download_rate,
            "peers": [peer.to_dict() for peer in self.peers]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SwarmSnapshot':
        """
        Build a snapshot from its dict form (e.g. decoded JSON)

        Raises:
            ValueError: if the dict is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("Invalid snapshot: not a dictionary!")
        try:
            peers = [PeerView.from_dict(p) for p in data.get("peers", [])]
            return cls(
                peers=tuple(peers),
                progress_percent=data.get("progress_percent", 0.0),
                download_rate=data.get("download_rate", 0),
                tick=data.get("tick", 0)
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid snapshot: {e}")


class SnapshotBuilder:
    """
    Assembles a fresh SwarmSnapshot from raw session counters every tick.
    Download rate is derived from the downloaded-bytes delta between builds.
    """

    def __init__(self, clock=time.time):
        self.clock = clock
        self.tick = 0
        self.last_downloaded = None
        self.last_time = None

    def build(self, peers: Iterable[PeerView], pieces_complete: int,
              pieces_total: int, downloaded_bytes: int) -> SwarmSnapshot:
        """
        Build the next snapshot

        Args:
            peers(Iterable[PeerView]): currently connected peers
            pieces_complete(int): verified pieces so far
            pieces_total(int): pieces in the torrent, 0 while fetching metadata
            downloaded_bytes(int): total bytes downloaded so far

        Returns:
            SwarmSnapshot: the snapshot for this tick
        """
        now = self.clock()

        if pieces_total > 0:
            progress = min(100.0, max(0.0, pieces_complete / pieces_total * 100.0))
        else:
            progress = 0.0

        rate = 0
        if self.last_downloaded is not None:
            elapsed = now - self.last_time
            delta = downloaded_bytes - self.last_downloaded
            if elapsed > 0 and delta > 0:
                rate = int(delta / elapsed)

        self.last_downloaded = downloaded_bytes
        self.last_time = now
        self.tick += 1

        return SwarmSnapshot(
            peers=tuple(peers),
            progress_percent=progress,
            download_rate=rate,
            tick=self.tick
        )
