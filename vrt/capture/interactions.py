"""Interaction runner: validates and executes scripted page steps.

``evaluate`` is the only step kind that carries script text, and the only
way it reaches the page is through ``validate_evaluate_script``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from playwright.async_api import Page

from vrt.errors import SecurityError
from vrt.models.interaction import (
    CheckStep,
    ClickStep,
    DragStep,
    EvaluateStep,
    HoverStep,
    InteractionStep,
    PressStep,
    ScreenshotStep,
    ScrollStep,
    SelectStep,
    TypeStep,
    WaitStep,
)
from vrt.utils.paths import sanitize_path_component

logger = logging.getLogger(__name__)

DENYLIST = (
    "require",
    "process",
    "child_process",
    "__dirname",
    "__filename",
    "eval",
    "new function",
    "settimeout",
    "setinterval",
    "setimmediate",
    "fs",
    "http",
    "https",
    "net",
    "os",
    "path",
    "crypto",
    "buffer",
    "import(",
)

_IDENT_CHAR = r"[a-z0-9_$]"


def _token_pattern(token: str) -> re.Pattern:
    # Whole identifiers only, so "os" does not trip on "position".
    pattern = re.escape(token)
    if re.match(_IDENT_CHAR, token[0]):
        pattern = rf"(?<!{_IDENT_CHAR})" + pattern
    if re.match(_IDENT_CHAR, token[-1]):
        pattern += rf"(?!{_IDENT_CHAR})"
    return re.compile(pattern)


_DENY_PATTERNS = [(token, _token_pattern(token)) for token in DENYLIST]

# The constructor is only distinguishable from the keyword by case
_FUNCTION_CONSTRUCTOR = re.compile(r"(?<![\w$])Function\s*\(")

DEFAULT_WAIT_TIMEOUT_MS = 30000


def validate_evaluate_script(script: object) -> str:
    """Return ``script`` if it is a string free of denylisted tokens.

    Raises:
        SecurityError: the payload is not a string or contains a token.
    """
    if not isinstance(script, str):
        raise SecurityError("Evaluate function must be provided as a string")
    if not script.strip():
        raise SecurityError("Evaluate interaction requires a function")

    if _FUNCTION_CONSTRUCTOR.search(script):
        raise SecurityError('Unsafe pattern "Function" detected in evaluate function')
    lowered = script.lower()
    for token, pattern in _DENY_PATTERNS:
        if pattern.search(lowered):
            raise SecurityError(f'Unsafe pattern "{token}" detected in evaluate function')
    return script


def validate_interactions(steps: Iterable[InteractionStep]) -> None:
    """Run the evaluate gate over every step before anything executes."""
    for step in steps:
        if isinstance(step, EvaluateStep):
            validate_evaluate_script(step.function)


async def run_interactions(
    page: Page,
    steps: Iterable[InteractionStep],
    output_dir: Path | None = None,
    prefix: str = "",
) -> None:
    """Execute steps in order against ``page``.

    ``prefix`` is prepended to screenshot step filenames so that concurrent
    capture combinations never write the same file.
    """
    for index, step in enumerate(steps):
        logger.debug("Interaction %d: %s", index + 1, step.type)
        await run_step(page, step, output_dir, prefix)
        if step.after_delay:
            await page.wait_for_timeout(step.after_delay)


async def run_step(
    page: Page, step: InteractionStep, output_dir: Path | None = None, prefix: str = "",
) -> None:
    """Execute a single interaction step."""
    match step:
        case ClickStep():
            await page.click(
                step.selector,
                button=step.button,
                click_count=step.click_count,
                delay=step.delay,
                position=step.position.model_dump() if step.position else None,
                modifiers=step.modifiers,
            )

        case TypeStep():
            if step.clear:
                await page.fill(step.selector, "")
            await page.type(step.selector, step.text, delay=step.type_delay)
            if step.press_enter:
                await page.press(step.selector, "Enter")

        case HoverStep():
            await page.hover(
                step.selector,
                position=step.position.model_dump() if step.position else None,
                modifiers=step.modifiers,
                force=step.force,
            )

        case DragStep():
            await page.drag_and_drop(
                step.source_selector,
                step.target_selector,
                source_position=step.source_position.model_dump() if step.source_position else None,
                target_position=step.target_position.model_dump() if step.target_position else None,
            )

        case SelectStep():
            await page.select_option(step.selector, step.values)

        case CheckStep():
            if step.type == "uncheck":
                await page.uncheck(step.selector)
            else:
                await page.check(step.selector)

        case PressStep():
            await page.press(step.selector, step.key, delay=step.delay)

        case ScrollStep():
            if step.selector:
                await page.locator(step.selector).scroll_into_view_if_needed()
            elif step.position:
                await page.evaluate(
                    "({ x, y }) => window.scrollTo(x, y)", step.position.model_dump()
                )

        case WaitStep():
            if step.selector:
                await page.wait_for_selector(
                    step.selector,
                    state=step.state,
                    timeout=step.timeout or DEFAULT_WAIT_TIMEOUT_MS,
                )
            elif step.timeout:
                await page.wait_for_timeout(step.timeout)

        case EvaluateStep():
            script = validate_evaluate_script(step.function)
            await page.evaluate(script, step.args)

        case ScreenshotStep():
            directory = output_dir or Path(".")
            directory.mkdir(parents=True, exist_ok=True)
            stem = sanitize_path_component(step.name)
            if prefix:
                stem = f"{sanitize_path_component(prefix)}-{stem}"
            path = directory / f"{stem}.png"
            await page.screenshot(
                path=str(path),
                full_page=step.full_page,
                clip=step.clip.model_dump() if step.clip else None,
            )
            logger.debug("Interaction screenshot saved to %s", path)

        case _:
            logger.warning("Unknown interaction type: %s", getattr(step, "type", step))
