import pytest

from chat_gateway.model_aliases import resolve_model_alias, split_tag

KNOWN = [
    "deepseek-coder:1.5b",
    "llama3:8b",
    "llama3:latest",
    "mistral:7b",
    "phi3:mini",
    "codellama:7b",
]


def test_split_tag():
    assert split_tag("llama3:8b") == ("llama3", "8b")
    assert split_tag("llama3") == ("llama3", None)


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("llama3:8b", "llama3:8b"),
        ("LLAMA3:8B", "llama3:8b"),
        ("llama3", "llama3:latest"),
        ("mistral", "mistral:7b"),
        ("deepseek", "deepseek-coder:1.5b"),
    ],
)
def test_resolves_close_names(requested, expected):
    assert resolve_model_alias(requested, KNOWN) == expected


@pytest.mark.parametrize(
    "requested",
    [
        "llama",          # prefix of llama3 without a dash boundary
        "phi",            # prefix of phi3
        "code",           # prefix of codellama
        "mistral:latest",  # explicit tag never swapped for another size
        "deepseek:7b",
        "coder",          # inner segment of deepseek-coder
        "",
    ],
)
def test_rejects_false_positives(requested):
    assert resolve_model_alias(requested, KNOWN) is None


def test_no_known_models():
    assert resolve_model_alias("llama3", []) is None
