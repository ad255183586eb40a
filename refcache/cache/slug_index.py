"""
Secondary slug -> DTO index derived from an id-keyed map.
"""
from typing import Any, Dict, Iterator, Mapping, Optional


class SlugIndex:
    """
    Read-only mapping from slug to DTO.

    Always built in one pass from a complete id map; DTOs with an empty or
    missing slug are skipped. When two DTOs share a slug the later one in
    id_map order wins.
    """

    __slots__ = ("_by_slug",)

    def __init__(self, by_slug: Optional[Dict[str, Any]] = None):
        self._by_slug: Dict[str, Any] = dict(by_slug or {})

    @classmethod
    def from_id_map(cls, id_map: Mapping[int, Any]) -> "SlugIndex":
        by_slug: Dict[str, Any] = {}
        for dto in id_map.values():
            slug = getattr(dto, "slug", None)
            if slug:
                by_slug[slug] = dto
        return cls(by_slug)

    def get(self, slug: str) -> Optional[Any]:
        return self._by_slug.get(slug)

    def __contains__(self, slug: object) -> bool:
        return slug in self._by_slug

    def __len__(self) -> int:
        return len(self._by_slug)

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_slug)

    def items(self):
        return self._by_slug.items()
