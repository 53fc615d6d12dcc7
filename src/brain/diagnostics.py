# src/brain/diagnostics.py
import random
import logging
from typing import Optional

from src.brain.snapshot import SwarmSnapshot
from src.config import DIAGNOSTIC_SAMPLE_RATE


class DiagnosticSampler:
    """
    Emits a human-readable swarm summary on a random subset of ticks.

    Runs beside the strategy, never inside it, and owns its own RNG so that
    sampling cannot disturb any randomness the strategy relies on.
    """

    def __init__(self, rate: float=DIAGNOSTIC_SAMPLE_RATE, rng: Optional[random.Random]=None):
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"Sample rate must be within [0, 1]: {rate}")
        self.rate = rate
        self.rng = rng or random.Random()

    def maybe_log(self, snapshot: SwarmSnapshot) -> bool:
        """Log the snapshot summary with probability `rate`; return whether it was logged."""
        if self.rate <= 0.0 or self.rng.random() >= self.rate:
            return False

        logging.info(f"Thinking... Peers: {snapshot.peer_count}, "
                     f"Progress: {snapshot.progress_percent:.1f}%, "
                     f"Speed: {snapshot.download_rate} B/s")
        return True
