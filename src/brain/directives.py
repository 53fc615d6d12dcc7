# src/brain/directives.py
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple, Union

from src.brain.errors import InvalidDirective
from src.brain.snapshot import PriorityTier, SwarmSnapshot


class BiasMode(Enum):
    NORMAL = "normal"
    ENDGAME = "endgame"
    AGGRESSIVE_PEER_ACQUISITION = "aggressive_peer_acquisition"


@dataclass(frozen=True)
class SetPriority:
    """Move a single peer to a priority tier."""
    peer_handle: str
    tier: PriorityTier

    type = "set_priority"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "peer": self.peer_handle, "tier": self.tier.value}


@dataclass(frozen=True)
class SetBias:
    """Switch the transport engine's swarm-wide bias mode."""
    mode: BiasMode

    type = "set_bias"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "mode": self.mode.value}


Directive = Union[SetPriority, SetBias]


class DirectiveFactory:
    """Factory for creating and decoding directives."""
    VALID_TYPES = [
        SetPriority.type,
        SetBias.type
    ]

    @staticmethod
    def set_priority(peer_handle: str, tier: Union[PriorityTier, str]) -> SetPriority:
        """
        Create a priority directive for one peer.

        Args:
            peer_handle(str): handle of the peer, as seen in the snapshot
            tier(PriorityTier | str): target tier or its value ("low", "normal", "high")

        Returns:
            SetPriority: the directive
        """
        return SetPriority(peer_handle, _coerce(PriorityTier, tier, "tier"))

    @staticmethod
    def set_bias(mode: Union[BiasMode, str]) -> SetBias:
        """
        Create a swarm-wide bias directive.

        Args:
            mode(BiasMode | str): target bias mode or its value

        Returns:
            SetBias: the directive
        """
        return SetBias(_coerce(BiasMode, mode, "mode"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Directive:
        """
        Convert the dict form of a directive back into a directive, with type validation

        Raises:
            InvalidDirective: on unknown type tag or out-of-range values
        """
        if not isinstance(data, dict):
            raise InvalidDirective(data, "not a dictionary")

        directive_type = data.get("type")
        if directive_type not in cls.VALID_TYPES:
            raise InvalidDirective(data, f"unknown directive type {directive_type!r}")

        if directive_type == SetPriority.type:
            if "peer" not in data or "tier" not in data:
                raise InvalidDirective(data, "missing peer or tier")
            return cls.set_priority(data["peer"], data["tier"])

        if "mode" not in data:
            raise InvalidDirective(data, "missing mode")
        return cls.set_bias(data["mode"])


def _coerce(enum_cls, value, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise InvalidDirective(value, f"{name} {value!r} is not one of "
                                      f"{[member.value for member in enum_cls]}")


def validate_directive(raw: Any, snapshot: SwarmSnapshot) -> Directive:
    """
    Check a single directive returned by a strategy against the snapshot it was computed from.

    Args:
        raw(Any): a SetPriority/SetBias instance or its dict form
        snapshot(SwarmSnapshot): the originating snapshot

    Returns:
        Directive: the validated directive

    Raises:
        InvalidDirective: if the directive cannot be applied
    """
    if isinstance(raw, dict):
        directive = DirectiveFactory.from_dict(raw)
    elif isinstance(raw, (SetPriority, SetBias)):
        directive = raw
    else:
        raise InvalidDirective(raw, f"unsupported directive object of type {type(raw).__name__}")

    # instances built without the factory may carry enum values
    if isinstance(directive, SetPriority):
        tier = _coerce(PriorityTier, directive.tier, "tier")
        if not isinstance(directive.peer_handle, str) or directive.peer_handle not in snapshot.peer_handles:
            raise InvalidDirective(raw, f"unknown peer handle {directive.peer_handle!r}")
        if tier is not directive.tier:
            directive = SetPriority(directive.peer_handle, tier)
    else:
        mode = _coerce(BiasMode, directive.mode, "mode")
        if mode is not directive.mode:
            directive = SetBias(mode)

    return directive


def validate_directives(raw_directives: Iterable[Any],
                        snapshot: SwarmSnapshot) -> Tuple[List[Directive], List[Tuple[Any, str]]]:
    """
    Validate a batch, dropping invalid entries one by one.

    Returns:
        Tuple[List[Directive], List[Tuple[Any, str]]]: valid directives in order,
        and (raw directive, reason) pairs for the dropped ones
    """
    valid = []
    rejected = []
    for raw in raw_directives:
        try:
            valid.append(validate_directive(raw, snapshot))
        except InvalidDirective as e:
            rejected.append((raw, e.reason))
    return valid, rejected


def serialize(directives: Iterable[Directive]) -> bytes:
    """Convert directives to bytes for crossing a process boundary."""
    return json.dumps([d.to_dict() for d in directives]).encode('utf-8')


def deserialize(data: bytes) -> List[Directive]:
    """
    Convert bytes back to directives

    Raises:
        ValueError: if the payload is not a JSON list
        InvalidDirective: if any entry is not a valid directive
    """
    try:
        decoded = json.loads(data.decode('utf-8'))
    except json.JSONDecodeError:
        raise ValueError("Failed to decode directives: invalid JSON!")

    if not isinstance(decoded, list):
        raise ValueError("Invalid directives: not a list!")

    return [DirectiveFactory.from_dict(item) for item in decoded]
