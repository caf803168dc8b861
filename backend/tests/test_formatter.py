"""Result formatter: line classification and ordering."""

from __future__ import annotations

from app.models.gemini import DEFAULT_ANALYSIS
from app.schemas.tree import BulletItem, Heading, LabeledField, Paragraph
from app.services.formatter import RULES, classify_line, clean_line, format_report


def test_numbered_line_becomes_heading():
    assert format_report("1. Species Identification:") == [Heading(text="Species Identification:")]


def test_dash_with_colon_becomes_labeled_field():
    blocks = format_report("- Scientific name: Quercus rubra")
    assert blocks == [LabeledField(label="Scientific name", value="Quercus rubra")]


def test_dash_without_colon_becomes_bullet():
    assert format_report("- Acorns provide food") == [BulletItem(text="Acorns provide food")]


def test_plain_text_becomes_paragraph():
    assert format_report("  Oaks are long-lived.  ") == [Paragraph(text="Oaks are long-lived.")]


def test_blank_lines_are_dropped():
    assert format_report("\n   \n\t\n") == []
    assert classify_line("") is None


def test_line_of_only_markdown_is_dropped():
    assert format_report("***\n- x\n```") == [BulletItem(text="x")]


def test_markdown_characters_are_stripped():
    assert clean_line("**Bold** _it_ `code` ## head") == "Bold it code  head"
    blocks = format_report("- **Common name:** Northern Red Oak")
    assert blocks == [LabeledField(label="Common name", value="Northern Red Oak")]


def test_markdown_heading_with_number():
    assert format_report("## 2. Physical Characteristics") == [Heading(text="Physical Characteristics")]


def test_value_keeps_later_colons():
    blocks = format_report("- Bloom time: 10:30 in spring")
    assert blocks == [LabeledField(label="Bloom time", value="10:30 in spring")]


def test_number_without_dot_is_paragraph():
    assert format_report("200 years old") == [Paragraph(text="200 years old")]


def test_order_is_preserved():
    report = "Intro text\n1. Section\n- Name: Oak\n- fact\n\nOutro"
    kinds = [b.kind for b in format_report(report)]
    assert kinds == ["paragraph", "heading", "field", "bullet", "paragraph"]


def test_crlf_line_endings():
    assert format_report("1. A\r\n- b") == [Heading(text="A"), BulletItem(text="b")]


def test_formatting_is_repeatable_and_does_not_touch_input():
    report = DEFAULT_ANALYSIS
    first = format_report(report)
    second = format_report(report)
    assert first == second
    assert report == DEFAULT_ANALYSIS


def test_default_analysis_structure():
    blocks = format_report(DEFAULT_ANALYSIS)
    headings = [b.text for b in blocks if isinstance(b, Heading)]
    assert headings == [
        "Species Identification:",
        "Physical Characteristics:",
        "Growth Requirements:",
        "Ecological Information:",
        "Additional Information:",
    ]
    assert all(isinstance(b, (Heading, LabeledField)) for b in blocks)


def test_rules_end_with_catch_all():
    name, matches, _ = RULES[-1]
    assert name == "paragraph"
    assert matches("anything")


def test_only_newlines_split_lines():
    blocks = format_report("- Note: form\x0cfeed kept\n- next")
    assert blocks == [
        LabeledField(label="Note", value="form\x0cfeed kept"),
        BulletItem(text="next"),
    ]
