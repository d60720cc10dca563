"""Profile name suggestions for discovered role bindings."""

from __future__ import annotations

from typing import Protocol, Sequence

# Used when the portal reports no account name
FALLBACK_ACCOUNT_LABEL = "aws"


class _Nameable(Protocol):
    @property
    def account_name(self) -> str: ...

    @property
    def role_name(self) -> str: ...


def _slug(text: str) -> str:
    return text.replace(" ", "-").lower()


def suggest_profile_name(account_label: str, role_name: str) -> str:
    """Build ``<account>-<role>``, lower-cased, with spaces turned into hyphens.

    >>> suggest_profile_name("Production", "AdministratorAccess")
    'production-administratoraccess'
    >>> suggest_profile_name("", "Admin")
    'aws-admin'
    """
    return f"{_slug(account_label or FALLBACK_ACCOUNT_LABEL)}-{_slug(role_name)}"


def allocate_unique_names(bindings: Sequence[_Nameable]) -> list[str]:
    """Return one unique name per binding, in input order.

    The first binding with a given base name keeps the bare form; later ones get the
    lowest free ``-2``, ``-3``, ... suffix. A suffix that is already some other
    binding's base name is skipped.
    """
    base_names = [suggest_profile_name(b.account_name, b.role_name) for b in bindings]
    used = set(base_names)

    names: list[str] = []
    claimed: set[str] = set()
    next_suffix: dict[str, int] = {}
    for base in base_names:
        if base not in claimed:
            claimed.add(base)
            names.append(base)
            continue
        n = next_suffix.get(base, 2)
        while f"{base}-{n}" in used:
            n += 1
        name = f"{base}-{n}"
        used.add(name)
        next_suffix[base] = n + 1
        names.append(name)
    return names
