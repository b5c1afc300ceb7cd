"""
Hierarchy decomposer - Splits a dotted name into its ancestor chain.

Labels are opaque: the name is split on the literal "." character only,
so empty labels and any unicode content are carried through unchanged.

    ancestors("new.example1.subdomain.example.com")
    == ["com", "example.com", "subdomain.example.com",
        "example1.subdomain.example.com"]
"""

LABEL_SEPARATOR = "."


def ancestors(name: str) -> list[str]:
    """
    Return the proper ancestor suffixes of a name, root first.

    A name with k dots yields exactly k ancestors ordered by strictly
    increasing length, ending with the immediate parent. The name itself
    is never included; a bare label yields an empty list.
    """
    labels = name.split(LABEL_SEPARATOR)
    return [LABEL_SEPARATOR.join(labels[index:]) for index in range(len(labels) - 1, 0, -1)]


def label_count(name: str) -> int:
    """Number of dot-separated labels in a name."""
    return name.count(LABEL_SEPARATOR) + 1


def is_second_level(name: str) -> bool:
    """True when the name has exactly two labels (one dot)."""
    return name.count(LABEL_SEPARATOR) == 1


def normalize_name(name: str) -> str:
    """Canonical storage and lookup form of a name: stripped and lowercased."""
    return name.strip().lower()
