"""HTML rendering for display blocks and the single identifier page."""

from __future__ import annotations

from html import escape

from app.agents.page_controller import UIState, phase_of
from app.schemas.tree import BulletItem, DisplayBlock, Heading, LabeledField
from app.services.formatter import format_report
from app.services.image_loader import ACCEPTED_TYPES


def block_to_html(block: DisplayBlock) -> str:
    if isinstance(block, Heading):
        return f'<div class="section"><h3>{escape(block.text)}</h3></div>'
    if isinstance(block, LabeledField):
        return (
            '<div class="field">'
            f'<span class="label">{escape(block.label)}:</span>'
            f'<span class="value">{escape(block.value)}</span>'
            "</div>"
        )
    if isinstance(block, BulletItem):
        return f'<div class="field"><span class="dot">&bull;</span><span>{escape(block.text)}</span></div>'
    return f"<p>{escape(block.text)}</p>"


def blocks_to_html(blocks: list[DisplayBlock]) -> str:
    return "\n".join(block_to_html(b) for b in blocks)


_STYLE = """
body { font-family: system-ui, sans-serif; background: #f9fafb; margin: 0; color: #374151; }
main { max-width: 56rem; margin: 0 auto; padding: 2rem 1rem; }
h1 { text-align: center; color: #111827; }
.card { background: #fff; border-radius: 0.75rem; box-shadow: 0 4px 12px rgba(0,0,0,.08); padding: 1.5rem; }
.error { background: #fef2f2; color: #b91c1c; padding: 1rem; border-radius: 0.375rem; margin-bottom: 1.5rem; }
.preview img { display: block; max-width: 100%; max-height: 500px; margin: 0 auto 1rem; }
.actions { display: grid; grid-template-columns: 1fr 1fr; gap: 1rem; }
button { padding: 0.5rem 1rem; border-radius: 0.375rem; border: 0; background: #059669; color: #fff; font-size: 1rem; }
button:disabled { opacity: 0.5; }
.results { background: #f9fafb; border-radius: 0.5rem; padding: 1.5rem; margin-top: 1.5rem; }
.section h3 { margin-top: 2rem; color: #111827; }
.field { display: flex; gap: 0.5rem; margin: 0 0 0.75rem 1rem; }
.label { font-weight: 600; min-width: 120px; color: #1f2937; }
.dot { color: #9ca3af; }
.hint { font-size: 0.875rem; color: #6b7280; }
"""


def render_page(state: UIState) -> str:
    """Render the whole page for *state*."""
    phase = phase_of(state)
    parts = [
        "<!doctype html>",
        '<html lang="en"><head><meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        "<title>Free Tree Identifier</title>",
        f"<style>{_STYLE}</style></head><body><main>",
        "<h1>Free Tree Identifier</h1>",
        '<p style="text-align:center">Upload a tree photo for educational identification and information</p>',
        '<div class="card">',
        '<form action="/upload" method="post" enctype="multipart/form-data">',
        f'<input type="file" name="image" accept="{",".join(ACCEPTED_TYPES)}" required>',
        "<button type=\"submit\">Upload Tree Photo</button>",
        '<p class="hint">PNG, JPG or JPEG (MAX. 20MB)</p>',
        "</form>",
    ]

    if state.error:
        parts.append(f'<div class="error"><p>{escape(state.error)}</p></div>')

    if state.is_loading and state.image is None:
        parts.append("<p>Loading...</p>")

    if state.image is not None:
        label = "Analyzing..." if state.is_loading else "Identify Tree"
        disabled = " disabled" if state.is_loading else ""
        parts.extend([
            '<div class="preview">',
            f'<img src="{escape(state.image.data_url)}" alt="Tree preview">',
            "</div>",
            '<form class="actions" action="/reidentify" method="post">',
            f'<button type="submit"{disabled}>{label}</button>',
            "</form>",
        ])

    if state.report:
        parts.extend([
            f'<div class="results" data-phase="{phase}">',
            "<h2>Tree Analysis Results</h2>",
            blocks_to_html(format_report(state.report)),
            "</div>",
        ])

    parts.append("</div></main></body></html>")
    return "\n".join(parts)
