# strategies/brain.py
# Hot-reloadable swarm logic. The running client polls this file; saving a
# change installs a new instance for the next tick. A broken edit is reported
# and the previous logic keeps running.
from src.brain.directives import DirectiveFactory
from src.brain.snapshot import PriorityTier
from src.strategies.swarm import ThresholdSwarmStrategy

ENDGAME_PROGRESS = 98.0
MIN_HEALTHY_PEERS = 3


class SwarmBrainStrategy(ThresholdSwarmStrategy):

    def evaluate(self, snapshot):
        directives = super().evaluate(snapshot)

        # Example: favour peers from a given country in steady state
        # if not directives:
        #     directives = [DirectiveFactory.set_priority(p.handle, PriorityTier.HIGH)
        #                   for p in snapshot.peers if p.country_code == 'JP']
        return directives


def create_strategy():
    return SwarmBrainStrategy(endgame_threshold=ENDGAME_PROGRESS,
                              low_peer_threshold=MIN_HEALTHY_PEERS)
