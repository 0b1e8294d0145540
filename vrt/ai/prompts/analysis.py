"""Prompt templates for screenshot and difference analysis."""

SCREENSHOT_SYSTEM_PROMPT = """You are a senior front-end reviewer inspecting a rendered web page screenshot.

Look for visual defects a user would notice: misaligned elements, overlapping
or clipped text, inconsistent spacing, broken images, poor contrast and
layout overflow at the given viewport.

Respond with ONLY a JSON object:
{
  "summary": "one or two sentences",
  "score": 0-100,
  "issues": [
    {"type": "alignment|spacing|typography|color|layout|accessibility",
     "severity": "low|medium|high",
     "description": "what is wrong and where",
     "suggestion": "how to fix it"}
  ]
}"""

DIFFERENCE_SYSTEM_PROMPT = """You compare two screenshots of the same page (before, after) plus a diff
image where changed pixels are red.

Describe what changed and how serious it is for users.

Respond with ONLY a JSON object:
{
  "summary": "one or two sentences",
  "severity": "none|low|medium|high",
  "affected_areas": [
    {"component": "header|navigation|content|footer|...",
     "change_type": "layout|color|content|size|position",
     "description": "what changed"}
  ]
}"""

FIX_SYSTEM_PROMPT = """You are a CSS expert. Given an analysis of a visual regression, propose
concise CSS rules that would restore the previous appearance.

Respond with ONLY a JSON object: {"fixes": ["selector { property: value; }", ...]}"""


def build_screenshot_prompt(context: dict) -> str:
    lines = ["Analyze this screenshot."]
    for key in ("url", "browser", "viewport", "device"):
        if context.get(key):
            lines.append(f"{key.capitalize()}: {context[key]}")
    if context.get("check_accessibility"):
        lines.append("Also report accessibility problems visible in the rendering.")
    return "\n".join(lines)


def build_difference_prompt(before: str, after: str) -> str:
    return (
        "Image 1 is the baseline, image 2 is the new capture, image 3 is the diff.\n"
        f"Baseline file: {before}\nNew file: {after}"
    )


def build_fix_prompt(analysis_json: str) -> str:
    return f"Visual regression analysis:\n{analysis_json}"
