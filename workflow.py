"""Guided item-description wizard and the guidance request lifecycle.

State changes go through `reduce(state, action)`, a pure function over frozen
`WorkflowState` values. `GuidanceWorkflow` owns one state per user session and
is the only place that awaits the guidance provider.

Every reset bumps `generation`. Responses carry the generation they were
requested under, so anything that settles after a reset is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol, Tuple, Union

import config
from guidance import Guidance, GuidanceFetchError
from item_form import (
    ItemDescription,
    build_description,
    can_submit,
    toggle_material,
    update_field,
)
from map_view import MapDirective, map_directive

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to get recycling guidance. Please try again."


@dataclass(frozen=True)
class WizardStep:
    key: str
    title: str
    fields: Tuple[str, ...]


WIZARD_STEPS = (
    WizardStep("basics", "What is it?", ("item_name", "quantity")),
    WizardStep("materials", "What is it made of?", ("materials", "materials_other", "plastic_type")),
    WizardStep("condition", "Size and condition", ("size", "condition")),
    WizardStep("details", "Details and location", ("special_features", "user_location")),
)
TOTAL_STEPS = len(WIZARD_STEPS)


class GuidanceProvider(Protocol):
    async def get_guidance(self, description: str) -> Guidance:
        ...


@dataclass(frozen=True)
class WorkflowState:
    item: ItemDescription = field(default_factory=ItemDescription)
    current_step: int = 1
    guidance: Optional[Guidance] = None
    is_loading: bool = False
    error: Optional[str] = None
    generation: int = 0


# ---------------- Actions ----------------
@dataclass(frozen=True)
class FieldUpdated:
    name: str
    value: str


@dataclass(frozen=True)
class MaterialToggled:
    material: str


@dataclass(frozen=True)
class StepAdvanced:
    pass


@dataclass(frozen=True)
class StepBack:
    pass


@dataclass(frozen=True)
class SubmitRejected:
    message: str


@dataclass(frozen=True)
class SubmitStarted:
    generation: int


@dataclass(frozen=True)
class GuidanceReceived:
    generation: int
    guidance: Guidance


@dataclass(frozen=True)
class GuidanceFailed:
    generation: int


@dataclass(frozen=True)
class WorkflowReset:
    pass


Action = Union[
    FieldUpdated,
    MaterialToggled,
    StepAdvanced,
    StepBack,
    SubmitRejected,
    SubmitStarted,
    GuidanceReceived,
    GuidanceFailed,
    WorkflowReset,
]


def _is_stale(state: WorkflowState, generation: int) -> bool:
    return generation != state.generation or not state.is_loading


def _on_form(state: WorkflowState) -> bool:
    return not state.is_loading and state.guidance is None


def reduce(state: WorkflowState, action: Action) -> WorkflowState:
    if isinstance(action, FieldUpdated):
        return replace(state, item=update_field(state.item, action.name, action.value), error=None)

    if isinstance(action, MaterialToggled):
        return replace(state, item=toggle_material(state.item, action.material), error=None)

    if isinstance(action, StepAdvanced):
        if not _on_form(state) or state.current_step >= TOTAL_STEPS:
            return state
        return replace(state, current_step=state.current_step + 1)

    if isinstance(action, StepBack):
        if not _on_form(state) or state.current_step <= 1:
            return state
        return replace(state, current_step=state.current_step - 1)

    if isinstance(action, SubmitRejected):
        return replace(state, error=action.message)

    if isinstance(action, SubmitStarted):
        if action.generation != state.generation or not _on_form(state):
            return state
        return replace(state, is_loading=True, guidance=None, error=None)

    if isinstance(action, GuidanceReceived):
        if _is_stale(state, action.generation):
            return state
        return replace(state, guidance=action.guidance, is_loading=False, error=None)

    if isinstance(action, GuidanceFailed):
        if _is_stale(state, action.generation):
            return state
        return replace(
            state,
            is_loading=False,
            guidance=None,
            error=FETCH_FAILED_MESSAGE,
            current_step=TOTAL_STEPS,
        )

    if isinstance(action, WorkflowReset):
        return WorkflowState(generation=state.generation + 1)

    raise TypeError(f"Unknown workflow action: {action!r}")


@dataclass(frozen=True)
class WorkflowView:
    """Everything a rendering layer needs for one render."""

    current_step: int
    total_steps: int
    step: WizardStep
    item: ItemDescription
    can_go_back: bool
    can_advance: bool
    can_submit: bool
    show_start_over: bool
    is_loading: bool
    error: Optional[str]
    guidance: Optional[Guidance]
    map: Optional[MapDirective]


def present(state: WorkflowState, maps_api_key: str = "") -> WorkflowView:
    on_form = _on_form(state)
    return WorkflowView(
        current_step=state.current_step,
        total_steps=TOTAL_STEPS,
        step=WIZARD_STEPS[state.current_step - 1],
        item=state.item,
        can_go_back=on_form and state.current_step > 1,
        can_advance=on_form and state.current_step < TOTAL_STEPS,
        can_submit=on_form and state.current_step == TOTAL_STEPS,
        show_start_over=state.current_step > 1 or state.guidance is not None,
        is_loading=state.is_loading,
        error=state.error,
        guidance=state.guidance,
        map=map_directive(state.item.user_location, maps_api_key) if state.guidance is not None else None,
    )


class GuidanceWorkflow:
    """One wizard session: form, step machine, and at most one guidance request."""

    def __init__(self, client: GuidanceProvider, maps_api_key: Optional[str] = None) -> None:
        self.client = client
        self.maps_api_key = config.GOOGLE_MAPS_API_KEY if maps_api_key is None else maps_api_key
        self.state = WorkflowState()

    def dispatch(self, action: Action) -> WorkflowState:
        self.state = reduce(self.state, action)
        return self.state

    def update_field(self, name: str, value: str) -> WorkflowState:
        return self.dispatch(FieldUpdated(name, value))

    def toggle_material(self, material: str) -> WorkflowState:
        return self.dispatch(MaterialToggled(material))

    def advance(self) -> WorkflowState:
        return self.dispatch(StepAdvanced())

    def back(self) -> WorkflowState:
        return self.dispatch(StepBack())

    def reset(self) -> WorkflowState:
        return self.dispatch(WorkflowReset())

    def view(self) -> WorkflowView:
        return present(self.state, self.maps_api_key)

    async def submit(self) -> WorkflowState:
        """Validate the form and request guidance for it.

        Ignored while a request is in flight or when not on the final step.
        Validation failures set `error` without sending anything; provider
        failures set the generic retry message and log the cause.
        """
        state = self.state
        if state.is_loading:
            logger.debug("Submit ignored: a guidance request is already in flight")
            return state
        if not _on_form(state) or state.current_step != TOTAL_STEPS:
            logger.debug("Submit ignored on step %d", state.current_step)
            return state

        check = can_submit(state.item)
        if not check.ok:
            return self.dispatch(SubmitRejected(check.message or ""))

        generation = state.generation
        description = build_description(state.item)
        self.dispatch(SubmitStarted(generation))

        try:
            guidance = await self.client.get_guidance(description)
        except GuidanceFetchError as exc:
            logger.warning("Guidance request failed: %s (cause: %r)", exc, exc.cause)
            return self._settle(GuidanceFailed(generation))
        except Exception:
            logger.exception("Unexpected error while fetching guidance")
            return self._settle(GuidanceFailed(generation))

        if not isinstance(guidance, Guidance):
            logger.warning("Guidance client returned %s instead of Guidance", type(guidance).__name__)
            return self._settle(GuidanceFailed(generation))
        return self._settle(GuidanceReceived(generation, guidance))

    def _settle(self, action: Union[GuidanceReceived, GuidanceFailed]) -> WorkflowState:
        if action.generation != self.state.generation:
            logger.debug(
                "Discarding stale guidance response (generation %d, current %d)",
                action.generation,
                self.state.generation,
            )
        return self.dispatch(action)
