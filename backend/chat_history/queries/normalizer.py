"""Normalização de consultas para deduplicação no índice de frequência."""

import unicodedata
from typing import Optional

from chat_history.core.settings import settings


def _is_trailing_noise(char: str) -> bool:
    return char.isspace() or unicodedata.category(char).startswith("P")


def normalize(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Forma canônica de uma consulta: minúsculas, espaços colapsados, truncada e
    sem pontuação final. Não faz stemming nem correspondência aproximada.

    Texto só de pontuação ("?", "...") mantém a forma colapsada em vez de
    virar vazio; só texto em branco normaliza para "".

    O truncamento acontece antes da limpeza final, então
    normalize(normalize(x)) == normalize(x).
    """
    if not text:
        return ""
    limit = max_length or settings.MAX_NORMALIZED_QUERY_LENGTH

    normalized = " ".join(text.lower().split())
    normalized = normalized[:limit]

    end = len(normalized)
    while end > 0 and _is_trailing_noise(normalized[end - 1]):
        end -= 1
    if end == 0:
        return normalized
    return normalized[:end]
