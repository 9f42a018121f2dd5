"""
Fixed prompt set for the visa assistant chat UI.

Categories and prompts are returned by GET /api/v1/chat/prompts.
"""

from typing import TypedDict


class PromptCategory(TypedDict):
    id: str
    name: str
    prompts: list[str]


FIXED_PROMPT_CATEGORIES: list[PromptCategory] = [
    {
        "id": "results",
        "name": "My Results",
        "prompts": [
            "Why is my top pathway ranked first?",
            "How can I improve my eligibility score?",
            "Which pathway is the fastest for me?",
            "Which pathway is the cheapest overall?",
        ],
    },
    {
        "id": "requirements",
        "name": "Requirements",
        "prompts": [
            "Do I meet the salary threshold?",
            "Is my degree recognized?",
            "Do I need to speak the local language?",
            "Do I need a job offer before applying?",
        ],
    },
    {
        "id": "timeline",
        "name": "Timeline",
        "prompts": [
            "How long does processing take?",
            "What should I prepare first?",
            "Can I get expedited processing?",
        ],
    },
    {
        "id": "costs",
        "name": "Costs",
        "prompts": [
            "What are the total fees?",
            "Do I need an immigration lawyer?",
            "What does relocation usually cost?",
        ],
    },
    {
        "id": "documents",
        "name": "Documents",
        "prompts": [
            "Which documents am I missing?",
            "Do my documents need to be translated?",
            "Do I need an apostille?",
        ],
    },
]


def get_fixed_prompts() -> list[PromptCategory]:
    """Return the fixed prompt categories for the chat UI."""
    return FIXED_PROMPT_CATEGORIES.copy()
