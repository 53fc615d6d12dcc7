#!/usr/bin/env python3
# main.py
import sys
import json
import time
import random
import logging
import argparse

from src.brain.directives import BiasMode
from src.brain.diagnostics import DiagnosticSampler
from src.brain.engine import SwarmBrain
from src.brain.errors import CompileError
from src.brain.guard import InvocationGuard, TickResult
from src.brain.handle import ActiveStrategySlot
from src.brain.loader import StrategyLoader
from src.brain.sink import UploadSlotSink
from src.brain.snapshot import PeerView, SnapshotBuilder, SwarmSnapshot
from src.strategies.choking import UploadSlotManager
from src import config


def setup_logger(log_level: str = 'INFO') -> None:
    """Configure application logger"""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logging.info(f"Logging initialized at {logging.getLevelName(level)} level")


class SimulatedSwarm:
    """Fake transport session: peers come and go while pieces trickle in."""

    COUNTRIES = ['JP', 'DE', 'US', 'BR', None]

    def __init__(self, manager: UploadSlotManager, peers: int, pieces: int,
                 piece_size: int = 16384, seed: int = None):
        self.manager = manager
        self.pieces_total = pieces
        self.pieces_complete = 0
        self.piece_size = piece_size
        self.downloaded = 0
        self.rng = random.Random(seed)
        self.builder = SnapshotBuilder()
        self.next_peer = 0
        self.peers = {}
        for _ in range(peers):
            self._add_peer()

    def _add_peer(self) -> None:
        self.next_peer += 1
        address = f"10.0.0.{self.next_peer}:6881"
        self.peers[address] = self.rng.choice(self.COUNTRIES)
        self.manager.update_peer_stats(address)

    def _drop_peer(self) -> None:
        address = self.rng.choice(list(self.peers))
        del self.peers[address]
        self.manager.remove_peer(address)

    def widen_discovery(self, mode: BiasMode) -> None:
        if mode == BiasMode.AGGRESSIVE_PEER_ACQUISITION:
            logging.info("Transport: widening peer discovery")
            self._add_peer()

    def snapshot(self) -> SwarmSnapshot:
        """Advance the fake session by one tick and describe it."""
        if self.peers and self.rng.random() < 0.15:
            self._drop_peer()
        if self.rng.random() < 0.10:
            self._add_peer()

        if self.pieces_complete < self.pieces_total and self.peers:
            gained = min(self.rng.randint(0, len(self.peers)), self.pieces_total - self.pieces_complete)
            self.pieces_complete += gained
            self.downloaded += gained * self.piece_size
            for address in self.peers:
                self.manager.update_peer_stats(address, bytes_downloaded=self.rng.randint(0, 4) * self.piece_size)

        views = [
            PeerView(address, self.manager.get_peer_tier(address), country)
            for address, country in self.peers.items()
        ]
        return self.builder.build(views, self.pieces_complete, self.pieces_total, self.downloaded)

    def is_complete(self) -> bool:
        return self.pieces_complete >= self.pieces_total


def run_simulation(strategy_path: str, interval: float, timeout: float,
                   ticks: int, peers: int, pieces: int, seed: int = None) -> None:
    """Run the brain against a simulated swarm while hot-reloading the script"""
    manager = UploadSlotManager()
    swarm = SimulatedSwarm(manager, peers, pieces, seed=seed)
    sink = UploadSlotSink(manager, on_bias_change=swarm.widen_discovery)

    def report(result: TickResult) -> None:
        logging.info(f"Tick {result.tick}: {result.status.value}, "
                     f"{len(result.directives)} directives, "
                     f"unchoked {sorted(manager.get_unchoked_peers())}")

    brain = SwarmBrain(strategy_path, sink=sink, timeout=timeout)
    brain.add_reload_listener(
        lambda event: logging.info(f"Reload {'succeeded' if event.success else 'failed'}: "
                                   f"{event.source or event.path}")
    )

    with brain:
        try:
            for _ in range(ticks):
                report(brain.on_tick(swarm.snapshot()))
                if swarm.is_complete():
                    logging.info("Download complete!")
                    break
                time.sleep(interval)
        except KeyboardInterrupt:
            logging.info("Stopping simulation...")


def evaluate_once(strategy_path: str, snapshot_file: str, timeout: float) -> int:
    """Load the script, evaluate one snapshot read from JSON and print the directives"""
    try:
        with open(snapshot_file, 'r') as f:
            snapshot = SwarmSnapshot.from_dict(json.load(f))
    except (OSError, ValueError) as e:
        logging.error(f"Cannot read snapshot from {snapshot_file}: {e}")
        return 1

    slot = ActiveStrategySlot()
    try:
        slot.install(StrategyLoader(strategy_path).load())
    except CompileError as e:
        logging.error(str(e))
        return 1

    guard = InvocationGuard(slot, timeout=timeout, sampler=DiagnosticSampler(rate=0.0))
    try:
        result = guard.run_tick(snapshot)
    finally:
        guard.shutdown()

    print(json.dumps({
        "status": result.status.value,
        "source": str(result.source) if result.source else None,
        "directives": [d.to_dict() for d in result.directives],
        "rejected": [{"directive": repr(raw), "reason": reason} for raw, reason in result.rejected],
        "error": str(result.error) if result.error else None
    }, indent=2))
    return 0


def check_strategy(strategy_path: str) -> int:
    """Compile the script without running it"""
    try:
        handle = StrategyLoader(strategy_path).load()
    except CompileError as e:
        logging.error(str(e))
        return 1
    print(f"OK {handle.source} ({type(handle.strategy).__name__})")
    return 0


def main():
    """Main application entry point with command-line interface"""
    parser = argparse.ArgumentParser(description='Hot-reloadable swarm strategy engine')
    parser.add_argument('--log-level', default=config.LOG_LEVEL, help='Logging level')
    subparsers = parser.add_subparsers(dest='command')

    # Run command
    run_parser = subparsers.add_parser('run', help='Run the brain against a simulated swarm')
    run_parser.add_argument('--strategy', default=config.DEFAULT_STRATEGY_PATH, help='Path to strategy script')
    run_parser.add_argument('--interval', type=float, default=config.TICK_INTERVAL, help='Seconds between ticks')
    run_parser.add_argument('--timeout', type=float, default=config.EVALUATION_TIMEOUT, help='Evaluation budget in seconds')
    run_parser.add_argument('--ticks', type=int, default=config.DEFAULT_SIM_TICKS, help='Number of ticks to run')
    run_parser.add_argument('--peers', type=int, default=config.DEFAULT_SIM_PEERS, help='Initial peer count')
    run_parser.add_argument('--pieces', type=int, default=config.DEFAULT_SIM_PIECES, help='Pieces in the simulated torrent')
    run_parser.add_argument('--seed', type=int, default=None, help='Random seed for the simulation')

    # Evaluate command
    eval_parser = subparsers.add_parser('evaluate', help='Evaluate one snapshot from a JSON file')
    eval_parser.add_argument('--strategy', default=config.DEFAULT_STRATEGY_PATH, help='Path to strategy script')
    eval_parser.add_argument('--snapshot', required=True, help='Path to snapshot JSON')
    eval_parser.add_argument('--timeout', type=float, default=config.EVALUATION_TIMEOUT, help='Evaluation budget in seconds')

    # Check command
    check_parser = subparsers.add_parser('check', help='Compile a strategy script')
    check_parser.add_argument('--strategy', default=config.DEFAULT_STRATEGY_PATH, help='Path to strategy script')

    # Parse arguments
    args = parser.parse_args()

    # Set up logging
    setup_logger(args.log_level)

    # Execute requested command
    if args.command == 'run':
        run_simulation(args.strategy, args.interval, args.timeout,
                       args.ticks, args.peers, args.pieces, args.seed)
    elif args.command == 'evaluate':
        sys.exit(evaluate_once(args.strategy, args.snapshot, args.timeout))
    elif args.command == 'check':
        sys.exit(check_strategy(args.strategy))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
