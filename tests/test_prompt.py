import os
import sys
from datetime import date, datetime

import pytest

sys.path.insert(0, os.path.abspath("src"))

from scheduling_intake.orchestrator.prompt import build_prompt


def test_prompt_is_deterministic_for_same_text_and_day():
    a = build_prompt("Let's meet next Tuesday at 3pm", date(2024, 5, 1))
    b = build_prompt("Let's meet next Tuesday at 3pm", date(2024, 5, 1))
    assert a == b
    assert a.encode("utf-8") == b.encode("utf-8")


def test_prompt_embeds_text_and_iso_date():
    p = build_prompt("Let's meet next Tuesday at 3pm", date(2024, 5, 1))
    assert '"""Let\'s meet next Tuesday at 3pm"""' in p
    assert "2024-05-01" in p


def test_prompt_states_past_date_rule_and_output_shape():
    p = build_prompt("Call mom", date(2024, 5, 1))
    assert "before 2024-05-01" in p
    assert "needs_clarification" in p
    assert "single JSON object" in p


def test_prompt_changes_with_day():
    assert build_prompt("x", date(2024, 5, 1)) != build_prompt("x", date(2024, 5, 2))


def test_datetime_is_reduced_to_its_date():
    assert build_prompt("x", datetime(2024, 5, 1, 23, 59)) == build_prompt("x", date(2024, 5, 1))


def test_braces_in_user_text_are_kept_verbatim():
    p = build_prompt("agenda {draft} at 9", date(2024, 5, 1))
    assert '"""agenda {draft} at 9"""' in p


@pytest.mark.parametrize("bad", ["2024-05-01", None, 20240501])
def test_malformed_date_is_rejected(bad):
    with pytest.raises(TypeError):
        build_prompt("x", bad)
