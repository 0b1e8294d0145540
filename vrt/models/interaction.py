"""Scripted page interaction steps.

Each step kind is its own model and ``InteractionStep`` is the closed union
of them, discriminated by ``type``. Only ``EvaluateStep`` carries script
text; every other kind holds structured parameters.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter
from pydantic.alias_generators import to_camel


class Position(BaseModel):
    x: float = 0
    y: float = 0


class Clip(BaseModel):
    x: float
    y: float
    width: float
    height: float


class _Step(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    after_delay: int = 0  # ms, cooperative pause after the step


class ClickStep(_Step):
    type: Literal["click"] = "click"
    selector: str
    button: Literal["left", "right", "middle"] = "left"
    click_count: int = 1
    delay: int = 0
    position: Optional[Position] = None
    modifiers: Optional[list[str]] = None


class TypeStep(_Step):
    type: Literal["type", "fill"] = "type"
    selector: str
    text: str = ""
    clear: bool = True
    type_delay: int = 0
    press_enter: bool = False


class HoverStep(_Step):
    type: Literal["hover"] = "hover"
    selector: str
    position: Optional[Position] = None
    modifiers: Optional[list[str]] = None
    force: bool = False


class DragStep(_Step):
    type: Literal["drag"] = "drag"
    source_selector: str
    target_selector: str
    source_position: Optional[Position] = None
    target_position: Optional[Position] = None


class SelectStep(_Step):
    type: Literal["select"] = "select"
    selector: str
    values: Union[str, list[str]]


class CheckStep(_Step):
    type: Literal["check", "uncheck"] = "check"
    selector: str


class PressStep(_Step):
    type: Literal["press"] = "press"
    key: str
    selector: str = "body"
    delay: int = 0


class ScrollStep(_Step):
    type: Literal["scroll"] = "scroll"
    selector: Optional[str] = None
    position: Optional[Position] = None


class WaitStep(_Step):
    type: Literal["wait"] = "wait"
    selector: Optional[str] = None
    state: Literal["attached", "detached", "visible", "hidden"] = "visible"
    timeout: Optional[int] = None


class EvaluateStep(_Step):
    type: Literal["evaluate"] = "evaluate"
    function: StrictStr
    args: Any = None


class ScreenshotStep(_Step):
    type: Literal["screenshot"] = "screenshot"
    name: str = "interaction"
    full_page: bool = False
    clip: Optional[Clip] = None


InteractionStep = Annotated[
    Union[
        ClickStep,
        TypeStep,
        HoverStep,
        DragStep,
        SelectStep,
        CheckStep,
        PressStep,
        ScrollStep,
        WaitStep,
        EvaluateStep,
        ScreenshotStep,
    ],
    Field(discriminator="type"),
]

_steps_adapter = TypeAdapter(list[InteractionStep])


def parse_interactions(data: Any) -> list[InteractionStep]:
    """Validate raw step data (a dict or a list of dicts) into steps."""
    if isinstance(data, dict):
        data = [data]
    return _steps_adapter.validate_python(data)
