import random
import unittest

from src.brain.directives import BiasMode, SetBias, SetPriority
from src.brain.snapshot import PeerView, PriorityTier, SwarmSnapshot
from src.strategies.swarm import ThresholdSwarmStrategy

def make_snapshot(peer_count: int, progress: float, rate: int = 0) -> SwarmSnapshot:
    peers = [PeerView(f'10.0.0.{i}:6881') for i in range(peer_count)]
    return SwarmSnapshot(peers, progress, rate)

class TestThresholdSwarmStrategy(unittest.TestCase):
    def setUp(self):
        random.seed(42)
        self.strategy = ThresholdSwarmStrategy()

    def biases(self, directives):
        return [d for d in directives if isinstance(d, SetBias)]

    def test_endgame_scenario(self):
        snapshot = make_snapshot(5, 99.2, 1000)
        directives = self.strategy.evaluate(snapshot)

        self.assertEqual(directives[0], SetBias(BiasMode.ENDGAME))
        self.assertEqual(self.biases(directives), [SetBias(BiasMode.ENDGAME)])
        self.assertEqual(
            directives[1:],
            [SetPriority(peer.handle, PriorityTier.HIGH) for peer in snapshot.peers]
        )

    def test_endgame_without_per_peer_priorities(self):
        strategy = ThresholdSwarmStrategy(prioritize_peers=False)
        self.assertEqual(strategy.evaluate(make_snapshot(5, 99.2, 1000)),
                         [SetBias(BiasMode.ENDGAME)])

    def test_low_peer_scenario(self):
        directives = self.strategy.evaluate(make_snapshot(2, 40.0, 500))
        self.assertEqual(directives, [SetBias(BiasMode.AGGRESSIVE_PEER_ACQUISITION)])

    def test_steady_state_scenario(self):
        self.assertEqual(self.strategy.evaluate(make_snapshot(10, 50.0, 2000)), [])

    def test_endgame_beats_low_peer_count(self):
        directives = self.strategy.evaluate(make_snapshot(1, 99.5))
        self.assertEqual(self.biases(directives), [SetBias(BiasMode.ENDGAME)])

        directives = self.strategy.evaluate(make_snapshot(0, 100.0))
        self.assertEqual(directives, [SetBias(BiasMode.ENDGAME)])

    def test_boundary_is_not_endgame(self):
        self.assertEqual(self.strategy.evaluate(make_snapshot(5, 98.0)), [])
        self.assertEqual(self.strategy.evaluate(make_snapshot(2, 98.0)),
                         [SetBias(BiasMode.AGGRESSIVE_PEER_ACQUISITION)])
        self.assertEqual(self.biases(self.strategy.evaluate(make_snapshot(5, 98.0001))),
                         [SetBias(BiasMode.ENDGAME)])

    def test_peer_threshold_boundary(self):
        self.assertEqual(self.strategy.evaluate(make_snapshot(3, 10.0)), [])
        self.assertEqual(self.strategy.evaluate(make_snapshot(0, 10.0)),
                         [SetBias(BiasMode.AGGRESSIVE_PEER_ACQUISITION)])

    def test_properties_over_random_snapshots(self):
        for _ in range(500):
            peer_count = random.randint(0, 12)
            progress = random.choice([random.uniform(0.0, 100.0), 98.0, 100.0, 0.0])
            directives = self.strategy.evaluate(make_snapshot(peer_count, progress))
            biases = self.biases(directives)

            if progress > 98.0:
                self.assertEqual(biases, [SetBias(BiasMode.ENDGAME)])
            elif peer_count < 3:
                self.assertEqual(directives, [SetBias(BiasMode.AGGRESSIVE_PEER_ACQUISITION)])
            else:
                self.assertEqual(directives, [])

    def test_same_input_same_output(self):
        snapshot = make_snapshot(4, 99.0)
        self.assertEqual(self.strategy.evaluate(snapshot), ThresholdSwarmStrategy().evaluate(snapshot))

if __name__ == '__main__':
    unittest.main()
