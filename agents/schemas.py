"""JSON schemas for schema-constrained completions.

Both schemas are strict: every property is required and no extra keys are
allowed, so they are accepted by OpenAI's ``json_schema`` response format.
"""

from __future__ import annotations

from typing import Any

TOPIC_SCHEMA_NAME = "debate_topic"
VERDICT_SCHEMA_NAME = "judge_result"

_STRING_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

TOPIC_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "topic": {
            "type": "string",
            "description": "The debate motion, phrased as a proposition to argue for or against",
        },
        "pro_position": {
            "type": "string",
            "description": "What the pro side argues",
        },
        "con_position": {
            "type": "string",
            "description": "What the con side argues",
        },
        "background": {
            "type": "string",
            "description": "Context and why the question matters",
        },
    },
    "required": ["topic", "pro_position", "con_position", "background"],
    "additionalProperties": False,
}

VERDICT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "winner": {
            "type": "string",
            "enum": ["pro", "con", "draw"],
            "description": "Winning side (pro, con, or draw)",
        },
        "score": {
            "type": "object",
            "properties": {
                "pro": {"type": "integer", "description": "Pro side score (0-100)"},
                "con": {"type": "integer", "description": "Con side score (0-100)"},
            },
            "required": ["pro", "con"],
            "additionalProperties": False,
        },
        "reasoning": {
            "type": "string",
            "description": "Detailed explanation of the decision",
        },
        "pro_strengths": {**_STRING_LIST, "description": "What the pro side did well"},
        "pro_weaknesses": {**_STRING_LIST, "description": "Where the pro side can improve"},
        "con_strengths": {**_STRING_LIST, "description": "What the con side did well"},
        "con_weaknesses": {**_STRING_LIST, "description": "Where the con side can improve"},
        "final_comment": {
            "type": "string",
            "description": "Closing remarks from the judge",
        },
    },
    "required": [
        "winner",
        "score",
        "reasoning",
        "pro_strengths",
        "pro_weaknesses",
        "con_strengths",
        "con_weaknesses",
        "final_comment",
    ],
    "additionalProperties": False,
}
