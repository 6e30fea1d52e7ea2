"""Elicitation: asking the calling client for missing tool input."""

from .coordinator import (
    Accepted,
    Cancelled,
    Declined,
    ElicitationChannel,
    ElicitationCoordinator,
    ElicitationOutcome,
    ElicitationRequest,
    ElicitationState,
    NotNeeded,
    TimedOut,
    is_empty,
    merge_elicited,
    missing_fields,
)
from .flows import ElicitationFlow, ElicitationStep, single_step_flow
from .schema import (
    BooleanField,
    ElicitationSchema,
    EnumField,
    NumberField,
    PrimitiveField,
    StringField,
    primitive_from_json_schema,
)

__all__ = [
    "Accepted",
    "BooleanField",
    "Cancelled",
    "Declined",
    "ElicitationChannel",
    "ElicitationCoordinator",
    "ElicitationFlow",
    "ElicitationOutcome",
    "ElicitationRequest",
    "ElicitationSchema",
    "ElicitationState",
    "ElicitationStep",
    "EnumField",
    "NotNeeded",
    "NumberField",
    "PrimitiveField",
    "StringField",
    "TimedOut",
    "is_empty",
    "merge_elicited",
    "missing_fields",
    "primitive_from_json_schema",
    "single_step_flow",
]
