"""Tracked specification repositories and their board slugs."""

from __future__ import annotations

from dataclasses import dataclass

from openprs.core.exceptions import UnknownSpecError


@dataclass(frozen=True)
class SpecRepo:
    full_name: str
    spec_type: str
    slug: str


SPEC_REPOS: tuple[SpecRepo, ...] = (
    SpecRepo(full_name="ethereum/EIPs", spec_type="EIP", slug="eips"),
    SpecRepo(full_name="ethereum/ERCs", spec_type="ERC", slug="ercs"),
    SpecRepo(full_name="ethereum/RIPs", spec_type="RIP", slug="rips"),
)

SPEC_SLUGS: tuple[str, ...] = tuple(repo.slug for repo in SPEC_REPOS)


def spec_for_repo(full_name: str) -> SpecRepo:
    """Return the tracked spec entry for ``owner/name``; unknown repos get a slug from their name."""

    lower = full_name.lower()
    for repo in SPEC_REPOS:
        if repo.full_name.lower() == lower:
            return repo
    name = full_name.split("/")[-1]
    return SpecRepo(full_name=full_name, spec_type=name.upper().rstrip("S"), slug=name.lower())


def normalize_spec(spec: str) -> str:
    slug = spec.strip().lower()
    if slug not in SPEC_SLUGS:
        raise UnknownSpecError(spec, SPEC_SLUGS)
    return slug
