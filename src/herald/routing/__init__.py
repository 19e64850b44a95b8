"""Recipient routing: path expressions, declarations and dispatch planning."""

from herald.routing.declarations import (
    AdditionalTarget,
    DeclarationRegistry,
    DerivedText,
    LiteralText,
    TargetDeclaration,
    operation_id_of,
)
from herald.routing.paths import normalize_path, resolve_path
from herald.routing.planner import DispatchPlanner, PlannerConfig, SendInstruction

__all__ = [
    "AdditionalTarget",
    "DeclarationRegistry",
    "DerivedText",
    "LiteralText",
    "TargetDeclaration",
    "operation_id_of",
    "normalize_path",
    "resolve_path",
    "DispatchPlanner",
    "PlannerConfig",
    "SendInstruction",
]
