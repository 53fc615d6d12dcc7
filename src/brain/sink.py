# src/brain/sink.py
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from src.brain.directives import BiasMode, Directive, SetBias, SetPriority
from src.strategies.choking import UploadSlotManager


class DirectiveSink(ABC):
    """Abstract base class for whatever applies validated directives to live peers."""

    @abstractmethod
    def apply(self, directives: List[Directive]) -> None:
        """
        Apply a batch of validated directives, in order

        Args:
            directives(List[Directive]): directives for the current tick
        """
        pass


class UploadSlotSink(DirectiveSink):
    """
    Applies directives to the choking layer.

    SetPriority moves a peer between tiers of the UploadSlotManager; SetBias
    switches its bias mode and, when the mode changes, calls on_bias_change so
    the host can widen or narrow peer discovery.
    """

    def __init__(self, manager: UploadSlotManager,
                 on_bias_change: Optional[Callable[[BiasMode], None]]=None):
        self.manager = manager
        self.on_bias_change = on_bias_change

    def apply(self, directives: List[Directive]) -> None:
        for directive in directives:
            if isinstance(directive, SetPriority):
                self.manager.set_peer_tier(directive.peer_handle, directive.tier)
                logging.debug(f"Peer {directive.peer_handle} moved to {directive.tier.value} priority")
            elif isinstance(directive, SetBias):
                if self.manager.set_bias(directive.mode):
                    logging.info(f"Swarm bias switched to {directive.mode.value}")
                    if self.on_bias_change:
                        self.on_bias_change(directive.mode)
            else:
                raise TypeError(f"Unsupported directive: {directive!r}")
