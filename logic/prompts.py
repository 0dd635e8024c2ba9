"""Prompts and response schema sent to the AI stylist."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from models.taxonomy import AI_OCCASIONS, AI_SEASONS
from models.wardrobe_item import WardrobeItem

MAX_AI_COMBINATIONS = 8
UNSPECIFIED = "não especificada"

STYLING_CRITERIA: List[str] = [
    "Harmonia de cores",
    "Ocasiões apropriadas (casual, formal, festa, trabalho)",
    "Estações do ano",
    "Estilo e coerência visual",
    "Versatilidade e praticidade",
]


def system_instruction() -> str:
    """Compose the stylist system prompt with its evaluation criteria."""

    criteria = "\n".join(f"- {criterion}" for criterion in STYLING_CRITERIA)
    return (
        "Você é um estilista profissional especializado em criar combinações de looks. "
        "Analise as peças fornecidas e crie combinações inteligentes considerando:\n"
        f"{criteria}\n\n"
        "Retorne APENAS um JSON válido no formato especificado, sem texto adicional."
    )


def describe_items(items: Sequence[WardrobeItem]) -> str:
    """Render the numbered item listing embedded in the user prompt."""

    lines = []
    for index, item in enumerate(items, start=1):
        lines.append(
            f"{index}. {item.name} (ID: {item.item_id}, Categoria: {item.category}, "
            f"Cor: {item.color or UNSPECIFIED}, Marca: {item.brand or UNSPECIFIED}, "
            f"Estação: {item.season or UNSPECIFIED})"
        )
    return "\n".join(lines)


def user_prompt(items: Sequence[WardrobeItem]) -> str:
    return (
        f"Crie até {MAX_AI_COMBINATIONS} combinações inteligentes usando estas peças:\n\n"
        f"{describe_items(items)}\n\n"
        "Para cada combinação, escolha 2-5 peças que combinem bem. "
        "Retorne um JSON com este formato exato:\n"
        "{\n"
        '  "combinations": [\n'
        "    {\n"
        '      "name": "Nome descritivo do look",\n'
        '      "itemIds": [1, 2, 3],\n'
        f'      "occasion": "{"|".join(AI_OCCASIONS)}",\n'
        f'      "season": "{"|".join(AI_SEASONS)}",\n'
        '      "description": "Breve explicação do por quê essa combinação funciona"\n'
        "    }\n"
        "  ]\n"
        "}"
    )


def response_schema() -> Dict[str, Any]:
    """Structured-output schema constraining the stylist's JSON answer."""

    return {
        "type": "OBJECT",
        "properties": {
            "combinations": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "name": {"type": "STRING", "description": "Nome descritivo do look"},
                        "itemIds": {
                            "type": "ARRAY",
                            "items": {"type": "INTEGER"},
                            "description": "IDs das peças que compõem a combinação",
                        },
                        "occasion": {
                            "type": "STRING",
                            "enum": list(AI_OCCASIONS),
                            "description": "Ocasião apropriada para o look",
                        },
                        "season": {
                            "type": "STRING",
                            "enum": list(AI_SEASONS),
                            "description": "Estação do ano apropriada",
                        },
                        "description": {
                            "type": "STRING",
                            "description": "Explicação do por quê a combinação funciona",
                        },
                    },
                    "required": ["name", "itemIds", "occasion", "season", "description"],
                },
            }
        },
        "required": ["combinations"],
    }


__all__ = [
    "MAX_AI_COMBINATIONS",
    "STYLING_CRITERIA",
    "system_instruction",
    "describe_items",
    "user_prompt",
    "response_schema",
]
