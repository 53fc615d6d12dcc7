# src/strategies/swarm.py
import logging
from typing import List

from src.brain.directives import BiasMode, Directive, DirectiveFactory
from src.brain.snapshot import PriorityTier, SwarmSnapshot
from src.strategies.strategy import SwarmStrategy
from src.config import ENDGAME_PROGRESS_THRESHOLD, LOW_PEER_THRESHOLD

class ThresholdSwarmStrategy(SwarmStrategy):
    """
    Reference policy:
        progress > endgame threshold -> endgame bias (+ every peer to HIGH)
        fewer peers than the low-peer threshold -> aggressive peer acquisition
        otherwise -> steady state, no directives
    Endgame wins when both hold.
    """

    def __init__(self, endgame_threshold: float=ENDGAME_PROGRESS_THRESHOLD,
                 low_peer_threshold: int=LOW_PEER_THRESHOLD,
                 prioritize_peers: bool=True):
        self.endgame_threshold = endgame_threshold
        self.low_peer_threshold = low_peer_threshold
        self.prioritize_peers = prioritize_peers

    def evaluate(self, snapshot: SwarmSnapshot) -> List[Directive]:
        if snapshot.progress_percent > self.endgame_threshold:
            logging.info(f"Endgame detected at {snapshot.progress_percent:.1f}%, "
                         f"escalating {snapshot.peer_count} peers")
            directives = [DirectiveFactory.set_bias(BiasMode.ENDGAME)]
            if self.prioritize_peers:
                directives.extend(
                    DirectiveFactory.set_priority(peer.handle, PriorityTier.HIGH)
                    for peer in snapshot.peers
                )
            return directives

        if snapshot.peer_count < self.low_peer_threshold:
            logging.info(f"Low swarm health ({snapshot.peer_count} peers), "
                         f"biasing towards peer acquisition")
            return [DirectiveFactory.set_bias(BiasMode.AGGRESSIVE_PEER_ACQUISITION)]

        return []
