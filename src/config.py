# src/config.py
# ./src/config.py
import os

# --- General ---
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

# --- Strategy Script ---
DEFAULT_STRATEGY_PATH = os.environ.get('SWARM_BRAIN_STRATEGY', './strategies/brain.py')
STRATEGY_FACTORY_NAME = 'create_strategy' # preferred entry point in a script
STRATEGY_FUNCTION_NAME = 'evaluate' # fallback: module-level evaluate(snapshot)
STRATEGY_MODULE_PREFIX = 'swarm_strategy'

# --- Tick / Invocation ---
TICK_INTERVAL = 1.0 # seconds
EVALUATION_TIMEOUT = float(os.environ.get('SWARM_BRAIN_TIMEOUT', '0.25')) # seconds
RELOAD_POLL_INTERVAL = float(os.environ.get('SWARM_BRAIN_POLL_INTERVAL', '1.0')) # seconds
DIAGNOSTIC_SAMPLE_RATE = 0.05 # roughly one log line every 20 ticks

# --- Decision Thresholds ---
ENDGAME_PROGRESS_THRESHOLD = 98.0 # percent, strictly greater than
LOW_PEER_THRESHOLD = 3 # fewer peers than this triggers aggressive acquisition

# --- Choking ---
DEFAULT_MAX_UNCHOKED_PEERS = 4
AGGRESSIVE_EXTRA_UNCHOKE_SLOTS = 1

# --- Simulation (CLI demo) ---
DEFAULT_SIM_PEERS = 6
DEFAULT_SIM_PIECES = 200
DEFAULT_SIM_TICKS = 120
