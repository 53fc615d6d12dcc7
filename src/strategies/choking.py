# src/strategies/choking.py
import time
import threading
from typing import List, Set

from src.brain.directives import BiasMode
from src.brain.snapshot import PriorityTier
from src.strategies.strategy import ChokingStrategy
from src.config import AGGRESSIVE_EXTRA_UNCHOKE_SLOTS, DEFAULT_MAX_UNCHOKED_PEERS

TIER_RANK = {
    PriorityTier.HIGH: 0,
    PriorityTier.NORMAL: 1,
    PriorityTier.LOW: 2
}

def _tier_of(peer: str, peer_tiers) -> PriorityTier:
    if not peer_tiers:
        return PriorityTier.NORMAL
    return peer_tiers.get(peer, PriorityTier.NORMAL)

class PriorityChokingStrategy(ChokingStrategy):
    """
    Tit-for-tat within priority tiers: HIGH peers first, LOW peers last,
    download rate decides inside a tier.
    """

    def select_unchoked_peers(self, peer_stats, max_unchoked=4, peer_tiers=None) -> Set[str]:
        """
        Select peers to unchoke honouring the tiers set by directives

        Args:
            peer_stats(Dict[str, Dict]): dict mapping peer addresses to their stats
            max_unchoked(int): max number of peer to unchoke at once
            peer_tiers(Dict[str, PriorityTier]): priority tier per peer

        Returns:
            Set[str]: set of peer addresses to unchoke
        """
        ranked = self.rank_peers(peer_stats, peer_tiers)
        return set(ranked[:max_unchoked])

    @staticmethod
    def rank_peers(peer_stats, peer_tiers=None) -> List[str]:
        return [
            peer for peer, _ in sorted(
                peer_stats.items(),
                key=lambda x: (TIER_RANK[_tier_of(x[0], peer_tiers)],
                               -x[1].get('download_rate', 0))
            )
        ]


class UploadSlotManager:
    """Manages upload slots, peer tiers, the swarm bias and choking decisions."""
    def __init__(self, max_unchoked: int=DEFAULT_MAX_UNCHOKED_PEERS):
        self.max_unchoked = max_unchoked
        self.choking_strategy = PriorityChokingStrategy()
        self.peer_stats = {}
        self.peer_tiers = {} # {peer_address: PriorityTier}
        self.bias = BiasMode.NORMAL
        self.lock = threading.RLock()

    def set_peer_tier(self, peer_address: str, tier: PriorityTier):
        with self.lock:
            self.peer_tiers[peer_address] = tier

    def get_peer_tier(self, peer_address: str) -> PriorityTier:
        with self.lock:
            return _tier_of(peer_address, self.peer_tiers)

    def set_bias(self, mode: BiasMode) -> bool:
        """
        Switch the bias mode

        Returns:
            bool: True if the mode changed
        """
        with self.lock:
            changed = mode != self.bias
            self.bias = mode
            return changed

    def remove_peer(self, peer_address: str):
        """Forget everything about a disconnected peer."""
        with self.lock:
            self.peer_stats.pop(peer_address, None)
            self.peer_tiers.pop(peer_address, None)

    def update_peer_stats(self, peer_address: str, bytes_downloaded: int=0, bytes_uploaded: int=0):
        """
        Update statistics of a peer

        Args:
            peer_address(str): address of the peer to update
            bytes_downloaded(int): bytes downloaded from this peer
            bytes_uploaded(int): bytes uploaded from this peer
        """
        current_time = time.time()

        with self.lock:
            if peer_address not in self.peer_stats:
                self.peer_stats[peer_address] = {
                    'upload_total': 0,
                    'download_total': 0,
                    'upload_rate': 0,
                    'download_rate': 0,
                    'last_updated': current_time
                }

            stats = self.peer_stats[peer_address]
            time_diff = current_time - stats['last_updated']

            # Update totals
            stats['upload_total'] += bytes_uploaded
            stats['download_total'] += bytes_downloaded

            # Update rates
            if time_diff > 0:
                stats['upload_rate'] = bytes_uploaded / time_diff
                stats['download_rate'] = bytes_downloaded / time_diff

            stats['last_updated'] = current_time

    def effective_slots(self) -> int:
        """Unchoke slots under the current bias."""
        with self.lock:
            slots = self.max_unchoked
            if self.bias == BiasMode.AGGRESSIVE_PEER_ACQUISITION:
                slots += AGGRESSIVE_EXTRA_UNCHOKE_SLOTS
            elif self.bias == BiasMode.ENDGAME:
                high_peers = sum(
                    1 for peer in self.peer_stats
                    if _tier_of(peer, self.peer_tiers) == PriorityTier.HIGH
                )
                slots = max(slots, high_peers)
            return slots

    def get_unchoked_peers(self) -> Set[str]:
        """
        Get the set of peers that should be unchoked

        Returns:
            Set[str]: set of peer addresses to unchoke
        """
        with self.lock:
            return self.choking_strategy.select_unchoked_peers(
                dict(self.peer_stats), self.effective_slots(), dict(self.peer_tiers)
            )
