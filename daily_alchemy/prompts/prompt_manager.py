import json
import logging
from typing import Iterable

from daily_alchemy.prompts.prompt_alchemy_rules import BASIC_RULES, COMBINATION_SCHEMA, PATH_SCHEMA

logger = logging.getLogger(__name__)


def _serialize_context(context: Iterable) -> str:
    return json.dumps(
        [
            {"a": c.element_a, "b": c.element_b, "result": c.result_name, "emoji": c.result_emoji}
            for c in context
        ],
        ensure_ascii=False,
    )


def get_combination_prompt(a, b, context: list) -> dict:
    """Prompt asking the oracle what a + b makes"""
    prompt = {
        "system_prompt": (
            f"You decide what two elements make when combined, following these rules: {BASIC_RULES}"
            f"Known combinations (keep consistent with them): {_serialize_context(context)}"
            f"{COMBINATION_SCHEMA}"
        ),
        "user_prompt": f"Combine {a.name} {a.emoji} + {b.name} {b.emoji}.",
    }
    logger.debug("Combination prompt built (%s + %s, context=%s)", a.name, b.name, len(context))
    return prompt


def get_path_prompt(target_name: str, context: list, limit: int) -> dict:
    """Prompt asking the oracle for bridging paths from the starters to a target"""
    prompt = {
        "system_prompt": (
            f"You are a puzzle designer for this game: {BASIC_RULES}"
            f"Reuse these existing combinations wherever possible: {_serialize_context(context)}"
            f"{PATH_SCHEMA}"
        ),
        "user_prompt": (
            f"Create {limit} different paths from Earth, Water, Fire and Wind to the target "
            f"element '{target_name}'. Keep every path as short as possible."
        ),
    }
    logger.debug("Path prompt built (target=%s, context=%s, limit=%s)", target_name, len(context), limit)
    return prompt
