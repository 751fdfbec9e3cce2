"""Canonical instruction sent to the reasoning service."""

from __future__ import annotations

from datetime import date, datetime

_TEMPLATE = """
## Task
You are an intelligent assistant that extracts structured scheduling data from natural language messages.
Read the user text and pull out the scheduling intent it expresses (an appointment, meeting or reminder request).

## Context
Today's date is {today}. Resolve relative expressions such as "tomorrow" or "next Tuesday" against this date.

## Rules
- Use ISO formats: dates as YYYY-MM-DD, times as 24-hour HH:MM.
- If the requested date is before {today}, do NOT schedule it: set "status" to "needs_clarification" and explain why in "message".
- If the date, time or intent is missing or ambiguous, set "status" to "needs_clarification" and say what is missing in "message".
- Otherwise set "status" to "scheduled".
- Do not invent participants, places or durations that the text does not mention; use null instead.

## Output (strict)
Return ONLY a single JSON object, no code fences, no commentary:
{{
  "status": "scheduled" | "needs_clarification",
  "date": "YYYY-MM-DD" | null,
  "time": "HH:MM" | null,
  "duration_minutes": integer | null,
  "title": string | null,
  "participants": [string],
  "location": string | null,
  "message": string | null
}}

User text: \"\"\"{text}\"\"\"
""".strip()


def build_prompt(text: str, today: date) -> str:
    """Render the extraction instruction for ``text`` as of ``today``.

    Pure: the same text and calendar day always give the same string.
    """
    if isinstance(today, datetime):
        today = today.date()
    if not isinstance(today, date):
        raise TypeError(f"today must be a datetime.date, got {type(today).__name__}")
    if not isinstance(text, str):
        raise TypeError(f"text must be a str, got {type(text).__name__}")
    return _TEMPLATE.format(today=today.isoformat(), text=text)
