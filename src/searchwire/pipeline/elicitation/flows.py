# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Multi-step elicitation.

An ``ElicitationFlow`` is a fixed, ordered list of steps. Answers
accumulate as the flow advances: every accepted step seeds the defaults
of later steps, a step can be conditional on earlier answers, and a step
whose fields are all known already is skipped. Abandoning any step
aborts the whole flow.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ...core.exceptions import ElicitationAbandoned
from .coordinator import (
    Accepted,
    ElicitationCoordinator,
    ElicitationRequest,
    NotNeeded,
    is_empty,
    merge_elicited,
)
from .schema import ElicitationSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElicitationStep:
    """One form in a flow.

    Attributes:
        name: Identifier reported when the user abandons this step.
        message: Prompt shown to the user.
        schema: Fields requested by this step.
        applies: Predicate over the answers so far; the step is skipped when
            it returns False.
    """

    name: str
    message: str
    schema: ElicitationSchema
    applies: Callable[[Mapping[str, Any]], bool] | None = None

    def is_satisfied(self, values: Mapping[str, Any]) -> bool:
        return all(not is_empty(values.get(name)) for name in self.schema.properties)


@dataclass(frozen=True)
class ElicitationFlow:
    name: str
    steps: tuple[ElicitationStep, ...]

    @property
    def fields(self) -> set[str]:
        return {name for step in self.steps for name in step.schema.properties}

    async def run(self, coordinator: ElicitationCoordinator, params: Mapping[str, Any]) -> dict[str, Any]:
        """Walk the steps, merging each accepted answer into the parameters.

        Returns:
            Caller parameters merged with every accepted answer. Unchanged
            when the client cannot elicit.

        Raises:
            ElicitationAbandoned: A step was declined, cancelled or timed out.
        """
        values = dict(params)
        for step in self.steps:
            if step.applies is not None and not step.applies(values):
                logger.debug(f"Flow {self.name}: step {step.name} does not apply")
                continue
            if step.is_satisfied(values):
                logger.debug(f"Flow {self.name}: step {step.name} already satisfied")
                continue

            request = ElicitationRequest(message=step.message, schema=step.schema.with_defaults(values))
            outcome = await coordinator.request(request)
            if isinstance(outcome, NotNeeded):
                return values
            if not isinstance(outcome, Accepted):
                raise ElicitationAbandoned(
                    outcome.state.value.replace("_", " "),
                    tool_name=coordinator.tool_name,
                    step=step.name,
                )
            values = merge_elicited(values, outcome.content)
        return values


def single_step_flow(name: str, message: str, schema: ElicitationSchema) -> ElicitationFlow:
    return ElicitationFlow(name=name, steps=(ElicitationStep(name=name, message=message, schema=schema),))
