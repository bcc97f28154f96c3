"""Dependency-ordered task graph for multi-step Salesforce transactions.

Steps declare the steps they depend on. The graph runs in waves: every step
whose dependencies have finished runs concurrently with its siblings, and a
wave only starts after the previous wave fully settled. A failing step aborts
the graph once its wave has settled; nothing already committed is rolled back.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

C = TypeVar("C")


@dataclass(frozen=True)
class Step(Generic[C]):
    """One unit of work. ``run`` receives the shared context."""

    name: str
    run: Callable[[C], Awaitable[Any]]
    depends_on: tuple[str, ...] = field(default_factory=tuple)


class TaskGraph(Generic[C]):
    """A validated set of steps plus their execution waves.

    Raises:
        ValueError: On duplicate step names, unknown dependencies, or cycles.
    """

    def __init__(self, name: str, steps: Sequence[Step[C]]) -> None:
        self.name = name
        self._steps = {step.name: step for step in steps}
        if len(self._steps) != len(steps):
            raise ValueError(f"Duplicate step names in graph {name!r}")
        for step in steps:
            unknown = set(step.depends_on) - self._steps.keys()
            if unknown:
                raise ValueError(f"Step {step.name!r} depends on unknown steps: {sorted(unknown)}")
        self._waves = self._compute_waves([step.name for step in steps])

    def _compute_waves(self, order: list[str]) -> list[list[str]]:
        done: set[str] = set()
        waves: list[list[str]] = []
        remaining = list(order)
        while remaining:
            ready = [
                name for name in remaining
                if all(dep in done for dep in self._steps[name].depends_on)
            ]
            if not ready:
                raise ValueError(f"Dependency cycle among steps: {sorted(remaining)}")
            waves.append(ready)
            done.update(ready)
            remaining = [name for name in remaining if name not in done]
        return waves

    @property
    def waves(self) -> list[list[str]]:
        return [list(wave) for wave in self._waves]

    async def run(self, context: C) -> dict[str, Any]:
        """Execute every step and return their results keyed by step name."""
        results: dict[str, Any] = {}
        for wave in self._waves:
            logger.info("task_graph.wave_started", graph=self.name, steps=wave)
            outcomes = await asyncio.gather(
                *(self._steps[name].run(context) for name in wave),
                return_exceptions=True,
            )
            for name, outcome in zip(wave, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(
                        "task_graph.step_failed",
                        graph=self.name,
                        step=name,
                        error=str(outcome),
                    )
                    raise outcome
                results[name] = outcome
        return results
