from __future__ import annotations

import re
import unicodedata

INTERACTIVE_TAGS = ("input", "button", "a", "select", "textarea")

# id, name and class have dedicated tiers; these are tried as tag-scoped CSS.
TEST_ATTR_PRIORITY = (
    "data-testid",
    "data-test",
    "data-cy",
    "placeholder",
    "aria-label",
    "title",
    "alt",
)

NOISE_CLASSES = frozenset({"btn", "form-control", "input"})

_GENERATED_ID_PATTERN = re.compile(r"ext|gen")
_XPATH_SPACE_CHARS = " \t\r\n"
_XPATH_SPACE = re.compile(r"[ \t\r\n]+")
_MAX_NAME_BASE_LENGTH = 40


def normalize_space(value: str | None) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def xpath_normalize_space(value: str | None) -> str:
    """Collapse whitespace exactly as XPath normalize-space() does.

    Only space, tab, CR and LF count; a non-breaking space is kept so text
    queries built from the result match the element it was read from.
    """
    if not value:
        return ""
    return _XPATH_SPACE.sub(" ", str(value)).strip(_XPATH_SPACE_CHARS)


def is_generated_id(id_value: str) -> bool:
    """Ids carrying digits or framework markers (``ext-gen55``) are treated as unstable."""
    if re.search(r"\d", id_value):
        return True
    return bool(_GENERATED_ID_PATTERN.search(id_value))


def meaningful_classes(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [item for item in raw.split() if item and item not in NOISE_CLASSES]


def to_snake_identifier(value: str, max_length: int = _MAX_NAME_BASE_LENGTH) -> str:
    folded = _ascii_fold(value).lower()
    collapsed = re.sub(r"[^a-z0-9]+", "_", folded).strip("_")
    if len(collapsed) > max_length:
        collapsed = collapsed[:max_length].rstrip("_")
    if collapsed and collapsed[0].isdigit():
        collapsed = f"e_{collapsed}"
    return collapsed


def element_variable_name(base: str, tag: str, position: int) -> str:
    name = to_snake_identifier(base)
    if not name:
        name = f"element_{position}"
    return f"{name}_{tag}"


def pascal_to_snake(value: str) -> str:
    # LoginPage -> login_page
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()


def strip_non_alphanumeric(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "", value)


def exact_text_xpath(tag: str, text: str) -> str:
    return f"//{tag}[normalize-space()='{text}']"


def contains_text_xpath(tag: str, text: str) -> str:
    return f"//{tag}[contains(normalize-space(), '{text}')]"


def indexed_xpath(xpath: str, position: int) -> str:
    return f"({xpath})[{position}]"


def _ascii_fold(value: str) -> str:
    # Dotless i has no decomposition.
    decomposed = unicodedata.normalize("NFKD", value.replace("ı", "i"))
    return decomposed.encode("ascii", "ignore").decode("ascii")
