# src/strategies/strategy.py
from abc import ABC, abstractmethod
from typing import Dict, List, Set, TYPE_CHECKING

if TYPE_CHECKING:
    from src.brain.directives import Directive
    from src.brain.snapshot import PriorityTier, SwarmSnapshot

class ChokingStrategy(ABC):
    """Abstract base class for peers choking strategies."""

    @abstractmethod
    def select_unchoked_peers(self, peer_stats: Dict[str, Dict],
                              max_unchoked: int=4,
                              peer_tiers: Dict[str, 'PriorityTier']=None) -> Set[str]:
        """
        Select which peers to unchoke base on the strategy

        Args:
            peer_stats(Dict[str, Dict]): dict mapping peer addresses to their stats
            max_unchoked(int): max number of peer to unchoke at once
            peer_tiers(Dict[str, PriorityTier]): priority tier per peer, missing means NORMAL

        Returns:
            Set[str]: set of peers to unchoke
        """
        pass

class SwarmStrategy(ABC):
    """
    Abstract base class for swarm decision logic.

    Implementations must not reach into the transport engine; everything they
    know arrives in the snapshot, and everything they want changed leaves as
    directives.
    """

    @abstractmethod
    def evaluate(self, snapshot: 'SwarmSnapshot') -> List['Directive']:
        """
        Decide what to change for this tick

        Args:
            snapshot(SwarmSnapshot): immutable view of the swarm for this tick

        Returns:
            List[Directive]: directives to apply, possibly empty
        """
        pass
