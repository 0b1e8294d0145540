"""HTML report generator: a self-contained page with embedded diff rasters."""

from __future__ import annotations

import base64
import html
import logging
import time
from pathlib import Path

from vrt.models.comparison import ComparisonReport, FileReport

logger = logging.getLogger(__name__)


def _embed_image(path: str | None) -> str:
    """Read an image file and return a base64 data URI, or empty string on failure."""
    if not path:
        return ""
    try:
        p = Path(path)
        if not p.exists() or p.stat().st_size == 0:
            return ""
        data = base64.b64encode(p.read_bytes()).decode()
        return f"data:image/png;base64,{data}"
    except OSError as e:
        logger.debug("Could not embed %s: %s", path, e)
        return ""


def _build_file_card(entry: FileReport, threshold: float) -> str:
    status = "pass" if entry.passed else ("error" if entry.error else "fail")
    card = f'''
    <div class="file-card {status}">
      <div class="file-header">
        <span class="badge {status}">{status.upper()}</span>
        <strong>{html.escape(entry.file)}</strong>
        <span class="file-meta">{entry.difference:.2%} changed &middot; threshold {threshold:.2%}</span>
      </div>'''

    if entry.dimension_mismatch:
        card += '<div class="failure-banner">Image dimensions differ.</div>'
    if entry.error:
        card += f'<div class="failure-banner"><strong>Error:</strong> {html.escape(entry.error)}</div>'

    data_uri = _embed_image(entry.diff_path)
    if data_uri:
        card += f'<img class="diff-image" src="{data_uri}" alt="diff of {html.escape(entry.file)}"/>'

    if entry.ai_analysis:
        summary = html.escape(str(entry.ai_analysis.get("summary", "")))
        severity = html.escape(str(entry.ai_analysis.get("severity", "")))
        card += f'<div class="ai-box"><strong>AI ({severity}):</strong> {summary}</div>'

    if entry.suggested_fixes:
        fixes = "".join(f"<li><code>{html.escape(fix)}</code></li>" for fix in entry.suggested_fixes)
        card += f'<div class="fixes"><h4>Suggested CSS fixes</h4><ul>{fixes}</ul></div>'

    return card + "\n    </div>"


def render_html(report: ComparisonReport, engine_label: str = "") -> str:
    """Render a comparison report as a standalone HTML document."""
    verdict = "pass" if report.passed else "fail"
    title_suffix = f" &mdash; {html.escape(engine_label)}" if engine_label else ""
    cards = "".join(_build_file_card(entry, report.threshold) for entry in report.report)

    unmatched = ""
    if report.only_in_before or report.only_in_after:
        items = "".join(f"<li>{html.escape(n)} (before only)</li>" for n in report.only_in_before)
        items += "".join(f"<li>{html.escape(n)} (after only)</li>" for n in report.only_in_after)
        unmatched = f'<div class="unmatched"><h2>Unmatched screenshots</h2><ul>{items}</ul></div>'

    return f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Visual Regression Report{title_suffix}</title>
<style>
  :root {{ --pass: #22c55e; --fail: #ef4444; --error: #f97316; --bg: #f8fafc; --card: white; --border: #e2e8f0; --text: #1e293b; --muted: #64748b; --accent: #6366f1; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; padding: 1.5rem; }}
  .container {{ max-width: 1400px; margin: 0 auto; }}
  h1 {{ font-size: 1.8rem; margin-bottom: 0.3rem; }}
  .meta {{ color: var(--muted); margin-bottom: 1.5rem; font-size: 0.9rem; }}
  .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(130px, 1fr)); gap: 0.8rem; margin-bottom: 1.5rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); text-align: center; }}
  .stat .value {{ font-size: 1.8rem; font-weight: 700; }}
  .stat .label {{ font-size: 0.8rem; color: var(--muted); }}
  .stat.pass .value {{ color: var(--pass); }}
  .stat.fail .value {{ color: var(--fail); }}
  .badge {{ display: inline-block; padding: 0.15rem 0.55rem; border-radius: 9999px; font-size: 0.7rem; font-weight: 600; text-transform: uppercase; }}
  .badge.pass {{ background: #dcfce7; color: #166534; }}
  .badge.fail {{ background: #fecaca; color: #991b1b; }}
  .badge.error {{ background: #fed7aa; color: #9a3412; }}
  .file-card {{ background: var(--card); border-radius: 8px; margin-bottom: 0.8rem; padding: 0.8rem 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); }}
  .file-card.fail {{ border-left: 4px solid var(--fail); }}
  .file-card.error {{ border-left: 4px solid var(--error); }}
  .file-card.pass {{ border-left: 4px solid var(--pass); }}
  .file-header {{ display: flex; align-items: center; gap: 0.5rem; flex-wrap: wrap; }}
  .file-meta {{ font-size: 0.78rem; color: var(--muted); }}
  .failure-banner {{ background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; border-radius: 6px; padding: 0.5rem 0.8rem; margin-top: 0.6rem; font-size: 0.88rem; }}
  .diff-image {{ max-width: 100%; margin-top: 0.6rem; border-radius: 6px; border: 1px solid var(--border); }}
  .ai-box {{ margin-top: 0.6rem; padding: 0.6rem; border-left: 4px solid var(--accent); background: #eef2ff; font-size: 0.88rem; }}
  .fixes h4 {{ font-size: 0.85rem; color: var(--muted); margin-top: 0.6rem; }}
  .fixes code {{ background: #f1f5f9; padding: 0.1rem 0.3rem; border-radius: 3px; font-size: 0.8rem; }}
  .unmatched {{ background: #fefce8; border-radius: 8px; padding: 1rem; margin-bottom: 1.5rem; border-left: 4px solid #eab308; }}
  .unmatched h2 {{ font-size: 1rem; }}
  .unmatched ul {{ margin-left: 1.2rem; font-size: 0.9rem; }}
</style>
</head>
<body>
<div class="container">
  <h1>Visual Regression Report{title_suffix}</h1>
  <p class="meta">Generated {time.strftime("%Y-%m-%d %H:%M:%S")} &middot; Threshold {report.threshold:.2%}</p>

  <div class="summary">
    <div class="stat {verdict}"><div class="value">{verdict.upper()}</div><div class="label">Result</div></div>
    <div class="stat"><div class="value">{report.total_images}</div><div class="label">Compared</div></div>
    <div class="stat fail"><div class="value">{len(report.differences)}</div><div class="label">Differences</div></div>
  </div>

  {unmatched}

  <div id="file-list">
    {cards}
  </div>
</div>
</body>
</html>'''
