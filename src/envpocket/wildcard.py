"""Casamento de chaves com padrões curinga ('*' e '?')."""

WILDCARD_CHARS = ("*", "?")


class WildcardMatcher:
    """Padrão curinga compilado.

    '*' casa zero ou mais caracteres e '?' exatamente um; qualquer outro
    caractere é literal. O casamento é ancorado e sensível a maiúsculas.

    O casamento percorre texto e padrão com dois índices e guarda apenas a
    posição do último '*' visto; ao falhar, retoma logo após esse '*' com um
    caractere a mais consumido. O custo é O(len(padrão) * len(texto)) no pior
    caso, sem retrocesso exponencial.
    """

    def __init__(self, pattern: str):
        self.pattern = pattern

    def matches(self, text: str) -> bool:
        pattern = self.pattern
        p = t = 0
        star = -1
        mark = 0
        while t < len(text):
            if p < len(pattern) and pattern[p] == "*":
                star, mark = p, t
                p += 1
            elif p < len(pattern) and (pattern[p] == "?" or pattern[p] == text[t]):
                p += 1
                t += 1
            elif star != -1:
                p = star + 1
                mark += 1
                t = mark
            else:
                return False
        while p < len(pattern) and pattern[p] == "*":
            p += 1
        return p == len(pattern)

    def __repr__(self) -> str:
        return f"WildcardMatcher({self.pattern!r})"


def compile_pattern(pattern: str) -> WildcardMatcher:
    return WildcardMatcher(pattern)


def has_wildcards(text: str) -> bool:
    """Indica se o texto deve ser tratado como padrão."""
    return any(char in text for char in WILDCARD_CHARS)
