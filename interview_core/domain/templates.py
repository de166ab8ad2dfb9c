"""Starter code templates per editor language.

A question's code counts as "edited" only once it differs from the template of
its selected language.
"""

DEFAULT_LANGUAGE = "python"

LANGUAGE_TEMPLATES: dict[str, str] = {
    "python": "class Solution:\n    def solve(self):\n        pass\n",
    "java": "class Solution {\n    public void solve() {\n        \n    }\n}\n",
    "cpp": "class Solution {\npublic:\n    void solve() {\n        \n    }\n};\n",
    "javascript": "function solution() {\n    \n}\n",
}

SUPPORTED_LANGUAGES = frozenset(LANGUAGE_TEMPLATES)


def get_template(language: str) -> str:
    """Return the starter template for a language.

    Raises:
        ValueError: If the language is not supported
    """
    try:
        return LANGUAGE_TEMPLATES[language]
    except KeyError:
        raise ValueError(f"Unsupported language: {language}. Supported: {sorted(SUPPORTED_LANGUAGES)}") from None


def is_template(code: str, language: str) -> bool:
    """True if code is still the untouched template for language."""
    return code == LANGUAGE_TEMPLATES.get(language)
