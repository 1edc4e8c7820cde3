"""
Argument handling - Split free-form parameter strings into argument tokens.

Users type encoder options the way they would on a shell prompt, e.g.
``-vf "scale=w=%w:h=%h" -preset fast``. The executor applies arguments
verbatim, so the boundaries between arguments must survive exactly.
"""

from .constants import HEIGHT_PLACEHOLDER, WIDTH_PLACEHOLDER

QUOTE_CHARS = ('"', "'")


def tokenize(raw: str | None) -> list[str]:
    """
    Split a parameter string into arguments.

    Whitespace separates arguments unless it is inside a pair of matching
    quotes. Quote characters are removed from the result. Escapes and nested
    quotes are not supported. An unterminated quote runs to the end of the
    string.

    Args:
        raw: Parameter string as typed by the user

    Returns:
        List of arguments (empty for empty or blank input)
    """
    if not raw:
        return []

    tokens: list[str] = []
    current: list[str] = []
    in_token = False
    quote: str | None = None

    for char in raw:
        if quote is not None:
            if char == quote:
                quote = None
            else:
                current.append(char)
        elif char in QUOTE_CHARS:
            quote = char
            in_token = True
        elif char.isspace():
            if in_token:
                tokens.append("".join(current))
                current = []
                in_token = False
        else:
            current.append(char)
            in_token = True

    if in_token:
        tokens.append("".join(current))

    return tokens


def resolve_placeholders(filter_string: str, width: int, height: int) -> str:
    """Replace ``%w`` and ``%h`` with the tier dimensions (plain text substitution)."""
    return filter_string.replace(WIDTH_PLACEHOLDER, str(width)).replace(HEIGHT_PLACEHOLDER, str(height))


def join_arguments(arguments: list[str]) -> str:
    """
    Render arguments back into a single display string.

    Arguments containing whitespace are wrapped in double quotes so that
    tokenize() on the result gives back the same list.
    """
    rendered = []
    for arg in arguments:
        if arg == "" or any(c.isspace() for c in arg):
            rendered.append(f'"{arg}"')
        else:
            rendered.append(arg)
    return " ".join(rendered)
